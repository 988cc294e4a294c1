# apps/posting/models.py
"""
External posting (idempotency) records.

One SaleorPostingRecord exists per (source document, Saleor target). It is
inserted PENDING in the same transaction that posts the receipt or landed
cost, then moved to APPLIED or FAILED by the orchestrator. Records are never
deleted; an APPLIED record is the at-most-once guarantee.
"""
from django.db import models
from shared.models import TenantMixin, TimestampMixin


class SaleorPostingRecord(TenantMixin, TimestampMixin):

    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        APPLIED = 'APPLIED', 'Applied'
        FAILED = 'FAILED', 'Failed'

    idempotency_key = models.CharField(
        max_length=255,
        help_text="GR-{receipt_id}:{target} or LC-{landed_cost_id}:{target}"
    )
    goods_receipt = models.ForeignKey(
        'receiving.GoodsReceipt',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='posting_records'
    )
    landed_cost = models.ForeignKey(
        'landed_costs.LandedCost',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='posting_records'
    )
    target = models.CharField(max_length=512, help_text="External target: {variant_id}@{warehouse_id}")
    saleor_variant_id = models.CharField(max_length=255)
    saleor_warehouse_id = models.CharField(max_length=255)

    # Delta captured from the ledger while the variant lock was held
    quantity_delta = models.IntegerField()
    cost_delta = models.DecimalField(max_digits=20, decimal_places=4)
    quantity_after = models.IntegerField(help_text="Ledger on-hand for the target after this posting")
    unit_cost = models.DecimalField(
        max_digits=20,
        decimal_places=4,
        null=True,
        blank=True,
        help_text="Ledger WAC after this posting, rounded for external use"
    )
    currency = models.CharField(max_length=3)
    ledger_sequence = models.PositiveIntegerField(
        help_text="Last ledger sequence for the target when captured; orders records per target"
    )

    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_attempt_at = models.DateTimeField(null=True, blank=True)
    lease_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set while an attempt is in flight; other workers skip the record until it passes"
    )
    applied_at = models.DateTimeField(null=True, blank=True)
    external_reference = models.CharField(max_length=255, blank=True)
    error_message = models.TextField(blank=True)
    request_payload = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'idempotency_key'], name='uniq_posting_idempotency_key'),
            models.CheckConstraint(
                condition=models.Q(goods_receipt__isnull=False) | models.Q(landed_cost__isnull=False),
                name='posting_record_has_source',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='posting_tenant_status_idx'),
            models.Index(fields=['tenant', 'target', 'ledger_sequence'], name='posting_target_seq_idx'),
        ]

    def __str__(self):
        return f"{self.idempotency_key} [{self.status}]"

    @property
    def source_label(self):
        if self.goods_receipt_id:
            return self.goods_receipt.receipt_number
        return self.landed_cost.reference
