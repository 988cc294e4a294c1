# apps/suppliers/models.py
"""
Supplier reference data.

Suppliers are owned by purchasing; the receiving and costing core only
reads the supplier id through PurchaseOrder.
"""
from django.core.validators import RegexValidator
from django.db import models
from shared.models import TenantMixin, TimestampMixin

supplier_code_validator = RegexValidator(
    r'^[A-Za-z0-9_-]+$',
    'Code must be alphanumeric (hyphens and underscores allowed).',
)


class Supplier(TenantMixin, TimestampMixin):
    """A company inventory is purchased from."""
    code = models.CharField(
        max_length=50,
        validators=[supplier_code_validator],
        help_text="Internal abbreviation/code (unique per tenant)"
    )
    name = models.CharField(max_length=255, help_text="Supplier name")
    contact_name = models.CharField(max_length=255, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive suppliers cannot be used on new purchase orders"
    )

    class Meta:
        ordering = ['name']
        unique_together = [('tenant', 'code')]
        indexes = [
            models.Index(fields=['tenant', 'name'], name='supplier_tenant_name_idx'),
            models.Index(fields=['tenant', 'is_active'], name='supplier_tenant_active_idx'),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"
