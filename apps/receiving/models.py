# apps/receiving/models.py
"""
Goods receipt models.

A GoodsReceipt records stock arriving against a purchase order.

Lifecycle: DRAFT -> POSTED -> REVERSED
- DRAFT is the only state in which lines may change
- POSTED emits RECEIPT cost layer events and is immutable except for the
  reversal link
- Reversing creates a second, already-POSTED receipt with `reversal_of` set;
  the original gets `reversed_by` and becomes REVERSED (terminal)
"""
from decimal import Decimal
from django.conf import settings
from django.db import models
from simple_history.models import HistoricalRecords
from shared.models import TenantMixin, TimestampMixin


class GoodsReceipt(TenantMixin, TimestampMixin):
    """A receipt of goods against a purchase order."""

    class Status(models.TextChoices):
        DRAFT = 'DRAFT', 'Draft'
        POSTED = 'POSTED', 'Posted'
        REVERSED = 'REVERSED', 'Reversed'

    class SyncStatus(models.TextChoices):
        NOT_REQUIRED = 'NOT_REQUIRED', 'Not Required'
        PENDING = 'PENDING', 'Pending Sync'
        FAILED = 'FAILED', 'Sync Failed'
        SYNCED = 'SYNCED', 'Synced'

    receipt_number = models.CharField(
        max_length=30,
        help_text="Auto-generated receipt number (e.g., 'GR-000001')"
    )
    purchase_order = models.ForeignKey(
        'purchasing.PurchaseOrder',
        on_delete=models.PROTECT,
        related_name='goods_receipts'
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.DRAFT
    )
    reversal_of = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='reversal_receipt',
        help_text="Original receipt this one reverses"
    )
    reversed_by = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='reversed_receipt',
        help_text="Reversal receipt that reversed this one"
    )
    notes = models.TextField(blank=True)

    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='goods_receipts_posted'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='goods_receipts_created'
    )

    history = HistoricalRecords()

    class Meta:
        ordering = ['-created_at']
        unique_together = [('tenant', 'receipt_number')]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='receipt_tenant_status_idx'),
            models.Index(fields=['tenant', 'purchase_order'], name='receipt_tenant_po_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(reversal_of__isnull=True) | models.Q(reversed_by__isnull=True),
                name='receipt_reversal_links_exclusive',
            ),
        ]

    def __str__(self):
        return self.receipt_number

    @property
    def is_draft(self):
        return self.status == self.Status.DRAFT

    @property
    def is_reversal(self):
        return self.reversal_of_id is not None

    @property
    def can_reverse(self):
        return self.status == self.Status.POSTED and not self.is_reversal and self.reversed_by_id is None

    @property
    def total_quantity(self):
        return sum(line.quantity_received for line in self.lines.all())

    @property
    def total_cost(self):
        return sum((line.line_total for line in self.lines.all()), Decimal('0'))

    @property
    def landed_cost_total(self):
        return sum((line.landed_cost_total for line in self.lines.all()), Decimal('0'))

    @property
    def landed_total_cost(self):
        """Goods value plus every landed cost allocated to the lines."""
        return self.total_cost + self.landed_cost_total

    @property
    def sync_status(self):
        """External posting state, separate from the lifecycle status."""
        statuses = set(self.posting_records.values_list('status', flat=True))
        if not statuses:
            return self.SyncStatus.NOT_REQUIRED
        if 'FAILED' in statuses:
            return self.SyncStatus.FAILED
        if statuses == {'APPLIED'}:
            return self.SyncStatus.SYNCED
        return self.SyncStatus.PENDING


class GoodsReceiptLine(TenantMixin, TimestampMixin):
    """One variant received on a goods receipt."""
    receipt = models.ForeignKey(
        GoodsReceipt,
        on_delete=models.CASCADE,
        related_name='lines'
    )
    purchase_order_line = models.ForeignKey(
        'purchasing.PurchaseOrderLine',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='receipt_lines'
    )
    line_number = models.PositiveIntegerField()
    saleor_variant_id = models.CharField(max_length=255)
    variant_sku = models.CharField(max_length=255, blank=True)
    variant_name = models.CharField(max_length=255, blank=True)
    quantity_received = models.IntegerField(
        help_text="Units received; 0 marks a short-shipped line"
    )
    unit_cost = models.DecimalField(max_digits=14, decimal_places=4)
    currency = models.CharField(max_length=3)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['line_number']
        unique_together = [('receipt', 'line_number')]
        indexes = [
            models.Index(fields=['tenant', 'saleor_variant_id'], name='receipt_line_variant_idx'),
        ]

    def __str__(self):
        return f"{self.receipt.receipt_number} Line {self.line_number}: {self.variant_sku or self.saleor_variant_id}"

    @property
    def line_total(self):
        return Decimal(self.quantity_received) * self.unit_cost

    @property
    def landed_cost_total(self):
        return sum((a.amount for a in self.landed_cost_allocations.all()), Decimal('0'))

    @property
    def landed_cost_per_unit(self):
        """Allocated landed cost per received unit; None on a short-shipped line."""
        if self.quantity_received <= 0:
            return None
        return self.landed_cost_total / self.quantity_received

    @property
    def landed_unit_cost(self):
        per_unit = self.landed_cost_per_unit
        return None if per_unit is None else self.unit_cost + per_unit
