# apps/costing/models.py
"""
Cost layer ledger models.

Models:
- CostLayerEvent: Append-only record of one cost-affecting event for a
  (Saleor variant, Saleor warehouse). The ledger is the source of truth.
- VariantCostRollup: Derived running totals per (variant, warehouse). A
  rebuildable cache of the ledger fold, and the row locked to serialize
  appends for one variant.
"""
from decimal import Decimal
from django.conf import settings
from django.db import models
from shared.models import TenantMixin, TimestampMixin


class AppendOnlyError(Exception):
    """Raised when code tries to change or delete a ledger event."""
    pass


class CostLayerEvent(TenantMixin):
    """
    One cost layer.

    `quantity_delta` and `cost_delta` are signed. `qty_on_hand_after`,
    `total_cost_after` and `wac_after` capture the running fold at insert time
    for reporting; they are never read back for costing math.
    """

    class EventType(models.TextChoices):
        RECEIPT = 'RECEIPT', 'Goods Receipt'
        REVERSAL = 'REVERSAL', 'Goods Receipt Reversal'
        ADJUSTMENT = 'ADJUSTMENT', 'Cost Adjustment'

    saleor_variant_id = models.CharField(max_length=255, help_text="Saleor ProductVariant id")
    saleor_warehouse_id = models.CharField(max_length=255, help_text="Saleor Warehouse id")
    event_type = models.CharField(max_length=20, choices=EventType.choices)
    sequence = models.PositiveIntegerField(
        help_text="Monotonic per (variant, warehouse); assigned under the rollup row lock"
    )

    quantity_delta = models.IntegerField(help_text="Signed change in on-hand units")
    cost_delta = models.DecimalField(
        max_digits=20,
        decimal_places=4,
        help_text="Signed change in total cost, in the tenant base currency"
    )
    unit_cost = models.DecimalField(
        max_digits=20,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Unit cost of the originating line (informational)"
    )
    currency = models.CharField(max_length=3)

    qty_on_hand_after = models.IntegerField()
    total_cost_after = models.DecimalField(max_digits=20, decimal_places=4)
    wac_after = models.DecimalField(
        max_digits=20,
        decimal_places=8,
        null=True,
        blank=True,
        help_text="WAC after this event (held value when on-hand is zero or below)"
    )
    flagged_negative = models.BooleanField(
        default=False,
        help_text="Recorded under the negative-stock override; drives on-hand below zero"
    )

    source_receipt_line = models.ForeignKey(
        'receiving.GoodsReceiptLine',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='cost_events'
    )
    source_landed_cost = models.ForeignKey(
        'landed_costs.LandedCost',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='cost_events'
    )
    reversal_of_event = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='reversed_by_events',
        help_text="Event this one compensates"
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='cost_events'
    )
    event_timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['saleor_variant_id', 'saleor_warehouse_id', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'saleor_variant_id', 'saleor_warehouse_id', 'sequence'],
                name='uniq_cost_event_sequence',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'event_type', 'event_timestamp'], name='cost_event_type_ts_idx'),
            models.Index(fields=['tenant', 'event_timestamp'], name='cost_event_ts_idx'),
        ]

    def __str__(self):
        return (
            f"{self.event_type} #{self.sequence} {self.saleor_variant_id}@{self.saleor_warehouse_id} "
            f"qty={self.quantity_delta:+d} cost={self.cost_delta:+}"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError("Cost layer events are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError("Cost layer events are append-only and cannot be deleted.")


class VariantCostRollup(TenantMixin, TimestampMixin):
    """
    Cached fold of the ledger for one (variant, warehouse).

    WAC is computed on read from `total_cost / qty_on_hand`; `last_wac` only
    holds the previous WAC for when on-hand reaches zero.
    """
    saleor_variant_id = models.CharField(max_length=255)
    saleor_warehouse_id = models.CharField(max_length=255)
    qty_on_hand = models.IntegerField(default=0)
    total_cost = models.DecimalField(max_digits=20, decimal_places=4, default=Decimal('0'))
    last_wac = models.DecimalField(max_digits=20, decimal_places=8, null=True, blank=True)
    last_sequence = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, blank=True)

    class Meta:
        ordering = ['saleor_variant_id', 'saleor_warehouse_id']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'saleor_variant_id', 'saleor_warehouse_id'],
                name='uniq_variant_cost_rollup',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'saleor_warehouse_id'], name='cost_rollup_warehouse_idx'),
        ]

    def __str__(self):
        return f"{self.saleor_variant_id}@{self.saleor_warehouse_id}: {self.qty_on_hand} on hand"

    @property
    def target(self):
        return f"{self.saleor_variant_id}@{self.saleor_warehouse_id}"

    @property
    def wac(self):
        if self.qty_on_hand > 0:
            return self.total_cost / self.qty_on_hand
        return self.last_wac
