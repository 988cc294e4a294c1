# apps/purchasing/models.py
"""
Purchase order models.

Models:
- PurchaseOrder: Inbound order from a supplier into one Saleor warehouse
- PurchaseOrderLine: A Saleor variant being purchased, with received rollup

Purchase orders are created by the purchasing workflow. The goods receipt
pipeline only touches them through `quantity_received` and the derived status.
"""
from decimal import Decimal
from django.conf import settings
from django.db import models
from simple_history.models import HistoricalRecords
from shared.models import TenantMixin, TimestampMixin


class PurchaseOrder(TenantMixin, TimestampMixin):
    """Inbound order from a supplier."""

    class Status(models.TextChoices):
        OPEN = 'OPEN', 'Open'
        PARTIALLY_RECEIVED = 'PARTIALLY_RECEIVED', 'Partially Received'
        CLOSED = 'CLOSED', 'Closed'
        CANCELLED = 'CANCELLED', 'Cancelled'

    po_number = models.CharField(
        max_length=50,
        help_text="Purchase order number (unique per tenant)"
    )
    supplier = models.ForeignKey(
        'suppliers.Supplier',
        on_delete=models.PROTECT,
        related_name='purchase_orders',
        help_text="Supplier providing the goods"
    )
    saleor_warehouse_id = models.CharField(
        max_length=255,
        help_text="Saleor warehouse receiving the goods"
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.OPEN,
        help_text="Derived from received quantities unless cancelled/closed"
    )
    closed_manually = models.BooleanField(
        default=False,
        help_text="Closed by a user; stays CLOSED and accepts no further receipts"
    )
    expected_delivery_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders_created'
    )

    history = HistoricalRecords()

    class Meta:
        ordering = ['-created_at']
        unique_together = [('tenant', 'po_number')]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='po_tenant_status_idx'),
            models.Index(fields=['tenant', 'supplier'], name='po_tenant_supplier_idx'),
        ]

    def __str__(self):
        return self.po_number

    @property
    def total_expected_cost(self):
        return sum((line.line_total for line in self.lines.all()), Decimal('0'))

    @property
    def is_receivable(self):
        return self.status in (self.Status.OPEN, self.Status.PARTIALLY_RECEIVED)


class PurchaseOrderLine(TenantMixin, TimestampMixin):
    """One variant on a purchase order."""
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='lines'
    )
    line_number = models.PositiveIntegerField(help_text="Line sequence (10, 20, 30...)")
    saleor_variant_id = models.CharField(max_length=255, help_text="Saleor ProductVariant id")
    variant_sku = models.CharField(max_length=255, blank=True, help_text="SKU captured for display")
    variant_name = models.CharField(max_length=255, blank=True, help_text="Variant name captured for display")
    quantity_ordered = models.PositiveIntegerField()
    expected_unit_cost = models.DecimalField(max_digits=14, decimal_places=4)
    currency = models.CharField(max_length=3, default='USD')
    quantity_received = models.IntegerField(
        default=0,
        help_text="Net received quantity across posted receipts and reversals"
    )
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['line_number']
        unique_together = [('tenant', 'purchase_order', 'line_number')]
        indexes = [
            models.Index(fields=['tenant', 'saleor_variant_id'], name='po_line_variant_idx'),
        ]

    def __str__(self):
        return f"{self.purchase_order.po_number} Line {self.line_number}: {self.variant_sku or self.saleor_variant_id}"

    @property
    def line_total(self):
        return Decimal(self.quantity_ordered) * self.expected_unit_cost

    @property
    def quantity_remaining(self):
        return max(self.quantity_ordered - self.quantity_received, 0)
