# apps/landed_costs/models.py
"""
Landed cost models.

A LandedCost is a pool of shared cost (freight, duty, insurance, handling) spread over
the lines of one or more POSTED goods receipts. Allocation is a one-shot
operation: the LandedCost is created already ALLOCATED together with its
LandedCostAllocation rows and the matching ADJUSTMENT ledger events.
"""
from decimal import Decimal
from django.conf import settings
from django.db import models
from simple_history.models import HistoricalRecords
from shared.models import TenantMixin, TimestampMixin


class LandedCost(TenantMixin, TimestampMixin):

    class CostType(models.TextChoices):
        FREIGHT = 'FREIGHT', 'Freight'
        DUTY = 'DUTY', 'Duty'
        INSURANCE = 'INSURANCE', 'Insurance'
        HANDLING = 'HANDLING', 'Handling'
        OTHER = 'OTHER', 'Other'

    class Method(models.TextChoices):
        BY_VALUE = 'BY_VALUE', 'By Value'
        BY_QUANTITY = 'BY_QUANTITY', 'By Quantity'

    class Status(models.TextChoices):
        ALLOCATED = 'ALLOCATED', 'Allocated'

    reference = models.CharField(
        max_length=30,
        help_text="Auto-generated reference (e.g., 'LC-000001')"
    )
    cost_type = models.CharField(max_length=20, choices=CostType.choices, default=CostType.OTHER)
    description = models.CharField(max_length=255, blank=True)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3)
    allocation_method = models.CharField(max_length=20, choices=Method.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ALLOCATED)
    receipts = models.ManyToManyField(
        'receiving.GoodsReceipt',
        related_name='landed_costs',
        blank=True,
        help_text="Receipts whose lines share this cost"
    )

    allocated_at = models.DateTimeField(null=True, blank=True)
    allocated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='landed_costs_allocated'
    )

    history = HistoricalRecords()

    class Meta:
        ordering = ['-created_at']
        unique_together = [('tenant', 'reference')]

    def __str__(self):
        return f"{self.reference} {self.get_cost_type_display()} {self.total_amount} {self.currency}"

    @property
    def allocated_total(self):
        return sum((a.amount for a in self.allocations.all()), Decimal('0'))


class LandedCostAllocation(TenantMixin):
    """The share of one landed cost assigned to one receipt line."""
    landed_cost = models.ForeignKey(LandedCost, on_delete=models.CASCADE, related_name='allocations')
    receipt_line = models.ForeignKey(
        'receiving.GoodsReceiptLine',
        on_delete=models.PROTECT,
        related_name='landed_cost_allocations'
    )
    weight = models.BigIntegerField(help_text="Minor units of value, or units of quantity")
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        ordering = ['landed_cost', 'id']
        unique_together = [('landed_cost', 'receipt_line')]

    def __str__(self):
        return f"{self.landed_cost.reference} -> {self.receipt_line}: {self.amount}"
