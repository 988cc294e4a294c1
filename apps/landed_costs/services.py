"""
Landed cost allocation.

Spreads a pool of shared cost over the lines of POSTED receipts, proportional
to line value or line quantity, and records it as ADJUSTMENT cost layer
events (quantity 0, cost +share).

All arithmetic runs in integer minor currency units: the pool is converted
once, each share is floor(T * w / W), and the last line with a positive
weight absorbs the remainder, so shares always sum to the pool exactly.

Usage:
    allocator = LandedCostAllocator(tenant, user)
    allocator.preview([gr1.pk, gr2.pk], Decimal('30.00'), 'BY_VALUE')
    events = allocator.allocate([gr1.pk], Decimal('30.00'), 'USD', 'BY_VALUE', cost_type='FREIGHT')
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.costing.models import CostLayerEvent
from apps.costing.services import CostLedgerService
from apps.posting.services import PostingOrchestrator
from apps.receiving.models import GoodsReceipt, GoodsReceiptLine
from apps.tenants.models import Tenant, get_next_sequence_number, get_tenant_settings
from core.models import AuditLog
from shared.models import TenantContext
from .models import LandedCost, LandedCostAllocation

logger = logging.getLogger(__name__)


# ─── Data Classes ───────────────────────────────────────────────────────────────

@dataclass
class AllocationShare:
    """One line's share of a landed cost pool."""
    receipt_line: GoodsReceiptLine
    weight: int
    amount: Decimal

    @property
    def receipt_number(self) -> str:
        return self.receipt_line.receipt.receipt_number


# ─── Exceptions ─────────────────────────────────────────────────────────────────

class LandedCostValidationError(ValidationError):
    """Targets, currency or weights make the allocation impossible."""
    pass


# ─── Allocation math ────────────────────────────────────────────────────────────

def minor_units() -> int:
    return int(getattr(settings, 'CURRENCY_MINOR_UNITS', 2))


def to_minor(amount: Decimal, places: Optional[int] = None) -> int:
    """Decimal amount -> integer minor units. Rejects sub-minor precision."""
    places = minor_units() if places is None else places
    scaled = Decimal(amount).scaleb(places)
    if scaled != scaled.to_integral_value():
        raise LandedCostValidationError(f"Amount {amount} has more than {places} decimal places.")
    return int(scaled)


def from_minor(value: int, places: Optional[int] = None) -> Decimal:
    places = minor_units() if places is None else places
    return Decimal(value).scaleb(-places)


def line_weight(line: GoodsReceiptLine, method: str, places: Optional[int] = None) -> int:
    if method == LandedCost.Method.BY_QUANTITY:
        return max(int(line.quantity_received), 0)
    places = minor_units() if places is None else places
    value = (Decimal(line.quantity_received) * line.unit_cost).scaleb(places)
    return max(int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP)), 0)


def split_minor(total: int, weights: Sequence[int]) -> List[int]:
    """
    Split `total` minor units proportionally to `weights`.

    >>> split_minor(3000, [10000, 5000])
    [2000, 1000]
    """
    weight_sum = sum(weights)
    if weight_sum <= 0:
        raise LandedCostValidationError("Cannot allocate: the selected lines have no weight.")

    shares = [total * w // weight_sum for w in weights]
    last = max(i for i, w in enumerate(weights) if w > 0)
    shares[last] += total - sum(shares)
    return shares


# ─── Landed Cost Allocator ──────────────────────────────────────────────────────

class LandedCostAllocator:

    def __init__(self, tenant: Tenant, user=None, orchestrator: Optional[PostingOrchestrator] = None):
        self.tenant = tenant
        self.user = user
        self.orchestrator = orchestrator or PostingOrchestrator(tenant)

    def preview(self, receipt_ids, total_amount: Decimal, method: str) -> List[AllocationShare]:
        """Compute shares without writing anything."""
        receipts = self._load_receipts(receipt_ids)
        return self._compute(receipts, total_amount, method)

    def allocate(self, receipt_ids, total_amount: Decimal, currency: str, method: str,
                 cost_type: str = LandedCost.CostType.OTHER, description: str = '') -> List[CostLayerEvent]:
        """
        Allocate a landed cost pool and append the ADJUSTMENT events.

        Raises:
            LandedCostValidationError: bad targets, currency, amount or zero weight;
                also when a target was reversed before this transaction locked it
        """
        self._validate_currency(currency)
        if method not in LandedCost.Method.values:
            raise LandedCostValidationError(f"Unknown allocation method {method!r}.")
        if cost_type not in LandedCost.CostType.values:
            raise LandedCostValidationError(f"Unknown cost type {cost_type!r}.")

        with transaction.atomic():
            receipts = self._load_receipts(receipt_ids, lock=True)
            shares = self._compute(receipts, total_amount, method)

            landed_cost = LandedCost.objects.create(
                tenant=self.tenant,
                reference=get_next_sequence_number(self.tenant, 'LC'),
                cost_type=cost_type,
                description=description,
                total_amount=Decimal(total_amount),
                currency=currency.upper(),
                allocation_method=method,
                allocated_at=timezone.now(),
                allocated_by=self._user_or_none(),
            )
            landed_cost.receipts.set(receipts)

            ledger = CostLedgerService(self.tenant, self.user)
            ledger.lock_rollups(
                (share.receipt_line.saleor_variant_id, share.receipt_line.receipt.purchase_order.saleor_warehouse_id)
                for share in shares if share.amount
            )

            events = []
            for share in shares:
                LandedCostAllocation.objects.create(
                    tenant=self.tenant,
                    landed_cost=landed_cost,
                    receipt_line=share.receipt_line,
                    weight=share.weight,
                    amount=share.amount,
                )
                if not share.amount:
                    continue
                line = share.receipt_line
                events.append(ledger.append_event(
                    line.saleor_variant_id,
                    line.receipt.purchase_order.saleor_warehouse_id,
                    CostLayerEvent.EventType.ADJUSTMENT,
                    0,
                    share.amount,
                    currency=landed_cost.currency,
                    source_line=line,
                    source_landed_cost=landed_cost,
                ))

            self.orchestrator.enqueue_landed_cost(landed_cost)
            AuditLog.record(
                landed_cost, AuditLog.Action.ALLOCATE, user=self.user,
                total_amount=str(landed_cost.total_amount), method=method,
                receipts=[r.receipt_number for r in receipts], lines=len(shares),
            )
            transaction.on_commit(lambda: self._after_commit(landed_cost.pk), robust=True)

        logger.info(
            f"Allocated {landed_cost.reference} {landed_cost.total_amount} {landed_cost.currency} "
            f"{method} across {len(shares)} lines on {len(receipts)} receipts"
        )
        return events

    # ─── Helpers ────────────────────────────────────────────────────────────────

    def _load_receipts(self, receipt_ids, lock: bool = False) -> List[GoodsReceipt]:
        ids = sorted({int(pk) for pk in receipt_ids})
        if not ids:
            raise LandedCostValidationError("Select at least one receipt.")

        qs = GoodsReceipt.objects.filter(tenant=self.tenant, pk__in=ids).select_related('purchase_order')
        if lock:
            qs = qs.select_for_update(of=('self',))
        receipts = list(qs.order_by('pk'))

        missing = set(ids) - {r.pk for r in receipts}
        if missing:
            raise LandedCostValidationError(f"Receipts not found: {', '.join(str(pk) for pk in sorted(missing))}")
        for receipt in receipts:
            if receipt.status != GoodsReceipt.Status.POSTED or receipt.is_reversal:
                raise LandedCostValidationError(
                    f"{receipt.receipt_number} is {receipt.get_status_display().lower()}"
                    f"{' (a reversal)' if receipt.is_reversal else ''}; "
                    f"landed cost can only be allocated to posted receipts."
                )
        return receipts

    def _compute(self, receipts, total_amount, method) -> List[AllocationShare]:
        total = Decimal(total_amount)
        if total <= 0:
            raise LandedCostValidationError("Landed cost amount must be positive.")

        places = minor_units()
        total_minor = to_minor(total, places)
        lines = list(
            GoodsReceiptLine.objects.filter(tenant=self.tenant, receipt__in=receipts)
            .select_related('receipt__purchase_order')
            .order_by('receipt_id', 'line_number')
        )
        weights = [line_weight(line, method, places) for line in lines]
        amounts = split_minor(total_minor, weights)
        return [
            AllocationShare(receipt_line=line, weight=weight, amount=from_minor(amount, places))
            for line, weight, amount in zip(lines, weights, amounts)
        ]

    def _validate_currency(self, currency: str) -> None:
        base_currency = get_tenant_settings(self.tenant).currency
        if not currency or currency.upper() != base_currency:
            raise LandedCostValidationError(
                f"Landed cost currency {currency} differs from the ledger currency {base_currency}."
            )

    def _after_commit(self, landed_cost_id) -> None:
        if not settings.POSTING_SYNC_ON_COMMIT:
            return
        with TenantContext(self.tenant):
            landed_cost = LandedCost.objects.get(pk=landed_cost_id)
            failed = [r for r in self.orchestrator.process_landed_cost(landed_cost) if not r.ok]
            if failed:
                logger.warning(f"{landed_cost.reference}: {len(failed)} Saleor posting(s) not applied; left for retry")

    def _user_or_none(self):
        return self.user if getattr(self.user, 'is_authenticated', False) else None
