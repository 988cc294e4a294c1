# apps/tenants/models.py
"""
Tenant models for the multi-tenant inventory costing service.

Models:
- Tenant: One connected Saleor installation / operating company
- TenantSettings: Base currency, stock policy and Saleor connection details
- TenantSequence: Sequential document numbers (POs, goods receipts, landed costs)
"""
from django.db import models, transaction


class Tenant(models.Model):
    """
    Represents a single tenant in the system.

    Each tenant has isolated data - no tenant can see another tenant's
    purchase orders, receipts or cost ledger.
    """
    name = models.CharField(max_length=255, help_text="Company name")
    subdomain = models.CharField(
        max_length=63,
        unique=True,
        help_text="Subdomain used to resolve the tenant (e.g., 'acme')"
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive tenants cannot log in"
    )
    is_default = models.BooleanField(
        default=False,
        help_text="Default tenant for development (only one should be default)"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['subdomain'], name='tenant_subdomain_idx'),
            models.Index(fields=['is_active'], name='tenant_active_idx'),
        ]

    def __str__(self):
        return self.name


class TenantSettings(models.Model):
    """
    Configuration and preferences for each tenant.

    Created automatically when a Tenant is created (via signals).
    """
    tenant = models.OneToOneField(
        Tenant,
        on_delete=models.CASCADE,
        related_name='settings'
    )

    company_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Full legal company name"
    )
    timezone = models.CharField(
        max_length=50,
        default='America/New_York',
        help_text="Default timezone for the tenant"
    )
    currency = models.CharField(
        max_length=3,
        default='USD',
        help_text="Base currency (ISO 4217) of the cost ledger"
    )

    # Stock policy
    allow_negative_stock = models.BooleanField(
        default=False,
        help_text="Record events that drive on-hand below zero (flagged for audit) instead of rejecting them"
    )

    # Saleor connection (falls back to SALEOR_* settings when blank)
    saleor_api_url = models.URLField(
        blank=True,
        help_text="Saleor GraphQL endpoint, e.g. https://shop.example.com/graphql/"
    )
    saleor_auth_token = models.CharField(
        max_length=512,
        blank=True,
        help_text="App token used for Saleor mutations"
    )
    saleor_channel = models.CharField(
        max_length=100,
        blank=True,
        help_text="Saleor channel slug used for catalog lookups"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Settings for {self.tenant.name}"


class TenantSequence(models.Model):
    """
    Sequential document numbers per tenant.

    Usage:
        number = get_next_sequence_number(tenant, 'GR')  # Returns 'GR-000001'
    """
    SEQUENCE_TYPES = [
        ('PO', 'Purchase Order'),
        ('GR', 'Goods Receipt'),
        ('LC', 'Landed Cost'),
    ]

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name='sequences'
    )
    sequence_type = models.CharField(
        max_length=20,
        choices=SEQUENCE_TYPES,
        help_text="Type of sequence (PO, GR, LC)"
    )
    prefix = models.CharField(
        max_length=10,
        help_text="Prefix for the number (e.g., 'GR-')"
    )
    next_value = models.PositiveIntegerField(
        default=1,
        help_text="Next number to use"
    )
    padding = models.PositiveIntegerField(
        default=6,
        help_text="Zero-pad to this width (e.g., 6 = '000001')"
    )

    class Meta:
        unique_together = [('tenant', 'sequence_type')]
        indexes = [
            models.Index(fields=['tenant', 'sequence_type'], name='tenant_sequence_type_idx'),
        ]

    def __str__(self):
        return f"{self.tenant.name} - {self.sequence_type}"


DEFAULT_SEQUENCES = [
    # (type, prefix, padding)
    ('PO', 'PO-', 6),
    ('GR', 'GR-', 6),
    ('LC', 'LC-', 6),
]


def get_next_sequence_number(tenant, sequence_type):
    """
    Get the next sequential number for a tenant and sequence type.

    The sequence row is locked for the duration of the increment, so
    concurrent callers never receive the same number. A missing row is
    created on first use.

    Returns:
        str: Formatted sequence number (e.g., 'GR-000001')
    """
    with transaction.atomic():
        prefix, padding = next(
            ((p, w) for t, p, w in DEFAULT_SEQUENCES if t == sequence_type),
            (f'{sequence_type}-', 6),
        )
        TenantSequence.objects.get_or_create(
            tenant=tenant,
            sequence_type=sequence_type,
            defaults={'prefix': prefix, 'padding': padding},
        )
        seq = TenantSequence.objects.select_for_update().get(
            tenant=tenant,
            sequence_type=sequence_type
        )
        number = f"{seq.prefix}{str(seq.next_value).zfill(seq.padding)}"
        seq.next_value += 1
        seq.save(update_fields=['next_value'])
        return number


def get_tenant_settings(tenant):
    """Return the tenant's settings row, creating it if the signal never ran."""
    settings_obj, _ = TenantSettings.objects.get_or_create(
        tenant=tenant,
        defaults={'company_name': tenant.name},
    )
    return settings_obj
