"""
Cost layer ledger and weighted-average-cost aggregation.

CostLedgerService is the only writer of CostLayerEvent. Every append:
- locks the (variant, warehouse) VariantCostRollup row (select_for_update)
- assigns the next per-variant sequence number
- validates signs and the negative-stock policy
- inserts the event and advances the rollup

WACAggregator reads state back, either from the rollup (hot path) or by
folding the events (cold path), and can verify and rebuild the rollup.

Usage:
    from apps.costing.services import CostLedgerService, WACAggregator

    with transaction.atomic():
        ledger = CostLedgerService(tenant, user)
        ledger.append_event(variant_id, warehouse_id, 'RECEIPT', 10, Decimal('20.00'), currency='USD')

    state = WACAggregator(tenant).current_state(variant_id, warehouse_id)
    state.qty_on_hand, state.wac_display
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, OperationalError, transaction

from apps.tenants.models import Tenant, get_tenant_settings
from core.models import AuditLog
from .models import CostLayerEvent, VariantCostRollup

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
LEDGER_SCALE = Decimal('0.0001')


def round_cost(value: Optional[Decimal], places: Optional[int] = None) -> Optional[Decimal]:
    """Round a unit cost for display or external posting (COST_DECIMAL_PLACES, half-up)."""
    if value is None:
        return None
    if places is None:
        places = getattr(settings, 'COST_DECIMAL_PLACES', 4)
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


# ─── Data Classes ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class VariantCostState:
    """On-hand and cost for one (variant, warehouse) at a point in the ledger."""
    saleor_variant_id: str
    saleor_warehouse_id: str
    qty_on_hand: int
    total_cost: Decimal
    wac: Optional[Decimal]
    last_sequence: int

    @property
    def wac_display(self) -> Optional[Decimal]:
        return round_cost(self.wac)

    @property
    def target(self) -> str:
        return f"{self.saleor_variant_id}@{self.saleor_warehouse_id}"

    def matches(self, other: 'VariantCostState') -> bool:
        return (
            self.qty_on_hand == other.qty_on_hand
            and self.total_cost == other.total_cost
            and self.last_sequence == other.last_sequence
            and self.wac_display == other.wac_display
        )


def apply_delta(qty: int, total: Decimal, wac: Optional[Decimal],
                quantity_delta: int, cost_delta: Decimal) -> Tuple[int, Decimal, Optional[Decimal]]:
    """
    One step of the WAC fold.

    WAC is undefined at zero (or negative) on-hand, so the previous value is
    held. A pure cost adjustment moves WAC without moving quantity.
    """
    new_qty = qty + quantity_delta
    new_total = total + cost_delta
    new_wac = new_total / new_qty if new_qty > 0 else wac
    return new_qty, new_total, new_wac


# ─── Exceptions ─────────────────────────────────────────────────────────────────

class CostLedgerError(Exception):
    """Base exception for non-validation ledger failures."""
    pass


class ConcurrencyConflictError(CostLedgerError):
    """Lock contention or serialization failure; retry the whole operation."""
    pass


class CostRollupMismatchError(CostLedgerError):
    """The cached rollup disagrees with the ledger fold."""
    pass


class CostLedgerValidationError(ValidationError):
    """Event rejected before insert (signs, kinds)."""
    pass


class NegativeStockError(CostLedgerValidationError):
    """Event would drive on-hand below zero and the override is off."""
    pass


# ─── Cost Ledger Service ────────────────────────────────────────────────────────

class CostLedgerService:
    """
    Append-only writer for the cost layer ledger.

    Callers own the enclosing transaction (posting a receipt, allocating landed
    cost); each append additionally runs in its own savepoint.
    """

    def __init__(self, tenant: Tenant, user=None):
        self.tenant = tenant
        self.user = user
        self._settings = None

    @property
    def allow_negative_stock(self) -> bool:
        if self._settings is None:
            self._settings = get_tenant_settings(self.tenant)
        return self._settings.allow_negative_stock

    @transaction.atomic
    def append_event(
        self,
        variant_id: str,
        warehouse_id: str,
        event_type: str,
        quantity_delta: int,
        cost_delta: Decimal,
        *,
        currency: str,
        unit_cost: Optional[Decimal] = None,
        source_line=None,
        source_landed_cost=None,
        reversal_of_event: Optional[CostLayerEvent] = None,
    ) -> CostLayerEvent:
        """
        Append one event and advance the variant's rollup.

        Raises:
            CostLedgerValidationError: sign rule violated or unknown kind
            NegativeStockError: on-hand would go negative without override
            ConcurrencyConflictError: the variant lock could not be taken

        A rollup that disagrees with the newest event is repaired from the
        fold before the delta is applied.
        """
        quantity_delta = int(quantity_delta)
        cost_delta = Decimal(cost_delta).quantize(LEDGER_SCALE, rounding=ROUND_HALF_UP)
        self.validate_deltas(event_type, quantity_delta, cost_delta)

        rollup = self.reconcile_rollup(self.lock_rollup(variant_id, warehouse_id))

        new_qty, new_total, new_wac = apply_delta(
            rollup.qty_on_hand, rollup.total_cost, rollup.wac, quantity_delta, cost_delta
        )

        flagged = False
        if quantity_delta < 0 and new_qty < 0:
            if not self.allow_negative_stock:
                raise NegativeStockError(
                    f"{event_type} of {quantity_delta} for {rollup.target} would leave "
                    f"{new_qty} on hand; negative stock is not allowed."
                )
            flagged = True

        event = CostLayerEvent.objects.create(
            tenant=self.tenant,
            saleor_variant_id=variant_id,
            saleor_warehouse_id=warehouse_id,
            event_type=event_type,
            sequence=rollup.last_sequence + 1,
            quantity_delta=quantity_delta,
            cost_delta=cost_delta,
            unit_cost=unit_cost,
            currency=currency,
            qty_on_hand_after=new_qty,
            total_cost_after=new_total,
            wac_after=None if new_wac is None else new_wac.quantize(Decimal('0.00000001')),
            flagged_negative=flagged,
            source_receipt_line=source_line,
            source_landed_cost=source_landed_cost,
            reversal_of_event=reversal_of_event,
            created_by=self.user if getattr(self.user, 'is_authenticated', False) else None,
        )

        rollup.qty_on_hand = new_qty
        rollup.total_cost = new_total
        if new_wac is not None:
            rollup.last_wac = new_wac.quantize(Decimal('0.00000001'))
        rollup.last_sequence = event.sequence
        rollup.currency = rollup.currency or currency
        rollup.save(update_fields=[
            'qty_on_hand', 'total_cost', 'last_wac', 'last_sequence', 'currency', 'updated_at',
        ])

        if flagged:
            logger.warning(
                f"Negative stock recorded for {rollup.target}: event #{event.sequence} "
                f"leaves {new_qty} on hand (override enabled)"
            )
            AuditLog.record(
                event, AuditLog.Action.NEGATIVE_STOCK, user=self.user,
                qty_on_hand_after=new_qty, quantity_delta=quantity_delta,
            )

        logger.debug(f"Appended {event}")
        return event

    def reconcile_rollup(self, rollup: VariantCostRollup) -> VariantCostRollup:
        """
        Check a locked rollup against the newest ledger event.

        On any difference in sequence, quantity or total the mismatch is
        logged and audited and the rollup is rewritten from the fold.
        """
        latest = CostLayerEvent.objects.filter(
            tenant=self.tenant,
            saleor_variant_id=rollup.saleor_variant_id,
            saleor_warehouse_id=rollup.saleor_warehouse_id,
        ).order_by('-sequence').values('sequence', 'qty_on_hand_after', 'total_cost_after').first()
        expected = latest or {'sequence': 0, 'qty_on_hand_after': 0, 'total_cost_after': ZERO}
        if (
            rollup.last_sequence == expected['sequence']
            and rollup.qty_on_hand == expected['qty_on_hand_after']
            and rollup.total_cost == expected['total_cost_after']
        ):
            return rollup

        aggregator = WACAggregator(self.tenant)
        folded = aggregator.fold(rollup.saleor_variant_id, rollup.saleor_warehouse_id)
        logger.error(
            f"Cost rollup for {rollup.target} (tenant {self.tenant.pk}) is stale: "
            f"rollup qty={rollup.qty_on_hand} total={rollup.total_cost} seq={rollup.last_sequence}, "
            f"ledger qty={folded.qty_on_hand} total={folded.total_cost} seq={folded.last_sequence}; rebuilding"
        )
        AuditLog.record(
            rollup, AuditLog.Action.ROLLUP_MISMATCH, user=self.user,
            cached={'qty': rollup.qty_on_hand, 'total': str(rollup.total_cost), 'seq': rollup.last_sequence},
            ledger={'qty': folded.qty_on_hand, 'total': str(folded.total_cost), 'seq': folded.last_sequence},
            repaired=True,
        )
        aggregator.write_rollup(rollup, folded)
        return rollup

    def lock_rollups(self, keys: Iterable[Tuple[str, str]]) -> List[VariantCostRollup]:
        """
        Lock several (variant, warehouse) rollups in a stable order.

        Posting a multi-line receipt locks every key up front, sorted, so two
        receipts touching the same variants can never deadlock.
        """
        return [self.lock_rollup(variant_id, warehouse_id) for variant_id, warehouse_id in sorted(set(keys))]

    @staticmethod
    def validate_deltas(event_type: str, quantity_delta: int, cost_delta: Decimal) -> None:
        if event_type not in CostLayerEvent.EventType.values:
            raise CostLedgerValidationError(f"Unknown event type {event_type!r}.")

        if (quantity_delta > 0 > cost_delta) or (quantity_delta < 0 < cost_delta):
            raise CostLedgerValidationError(
                f"Quantity delta {quantity_delta} and cost delta {cost_delta} have opposite signs."
            )
        if quantity_delta == 0 and cost_delta != 0 and event_type != CostLayerEvent.EventType.ADJUSTMENT:
            raise CostLedgerValidationError(
                "Only ADJUSTMENT events may change cost without changing quantity."
            )
        if event_type == CostLayerEvent.EventType.RECEIPT and quantity_delta < 0:
            raise CostLedgerValidationError("RECEIPT events cannot remove stock.")
        if event_type == CostLayerEvent.EventType.REVERSAL and quantity_delta > 0:
            raise CostLedgerValidationError("REVERSAL events cannot add stock.")

    def lock_rollup(self, variant_id: str, warehouse_id: str) -> VariantCostRollup:
        """Lock (creating if needed) the rollup row that serializes appends for one variant."""
        lookup = dict(tenant=self.tenant, saleor_variant_id=variant_id, saleor_warehouse_id=warehouse_id)
        try:
            try:
                return VariantCostRollup.objects.select_for_update().get(**lookup)
            except VariantCostRollup.DoesNotExist:
                pass
            try:
                with transaction.atomic():
                    VariantCostRollup.objects.create(**lookup)
            except IntegrityError:
                # Another transaction created it first; fall through and wait on its lock
                pass
            return VariantCostRollup.objects.select_for_update().get(**lookup)
        except OperationalError as exc:
            raise ConcurrencyConflictError(
                f"Could not lock cost rollup for {variant_id}@{warehouse_id}: {exc}"
            ) from exc


# ─── WAC Aggregator ─────────────────────────────────────────────────────────────

class WACAggregator:
    """
    Derives on-hand quantity and weighted-average cost from the ledger.
    """

    def __init__(self, tenant: Tenant):
        self.tenant = tenant

    def current_state(self, variant_id: str, warehouse_id: str) -> VariantCostState:
        """Hot path: read the rollup row."""
        rollup = VariantCostRollup.objects.filter(
            tenant=self.tenant, saleor_variant_id=variant_id, saleor_warehouse_id=warehouse_id
        ).first()
        if rollup is None:
            return VariantCostState(variant_id, warehouse_id, 0, ZERO, None, 0)
        return self._state_from_rollup(rollup)

    def fold(self, variant_id: str, warehouse_id: str) -> VariantCostState:
        """Cold path: replay every event in sequence order."""
        qty, total, wac, last_sequence = 0, ZERO, None, 0
        events = CostLayerEvent.objects.filter(
            tenant=self.tenant, saleor_variant_id=variant_id, saleor_warehouse_id=warehouse_id
        ).order_by('sequence').values_list('sequence', 'quantity_delta', 'cost_delta')
        for sequence, quantity_delta, cost_delta in events.iterator():
            qty, total, wac = apply_delta(qty, total, wac, quantity_delta, cost_delta)
            last_sequence = sequence
        return VariantCostState(variant_id, warehouse_id, qty, total, wac, last_sequence)

    def verify(self, variant_id: str, warehouse_id: str) -> VariantCostState:
        """
        Compare the rollup with the fold and return the trustworthy state.

        A mismatch is logged and audited and the fold is returned; the cached
        value is never served when it disagrees with the ledger.
        """
        cached = self.current_state(variant_id, warehouse_id)
        folded = self.fold(variant_id, warehouse_id)
        if cached.matches(folded):
            return cached

        logger.error(
            f"Cost rollup mismatch for {folded.target} (tenant {self.tenant.pk}): "
            f"rollup qty={cached.qty_on_hand} total={cached.total_cost} seq={cached.last_sequence}, "
            f"ledger qty={folded.qty_on_hand} total={folded.total_cost} seq={folded.last_sequence}"
        )
        rollup = VariantCostRollup.objects.filter(
            tenant=self.tenant, saleor_variant_id=variant_id, saleor_warehouse_id=warehouse_id
        ).first()
        if rollup is not None:
            AuditLog.record(
                rollup, AuditLog.Action.ROLLUP_MISMATCH,
                cached={'qty': cached.qty_on_hand, 'total': str(cached.total_cost), 'seq': cached.last_sequence},
                ledger={'qty': folded.qty_on_hand, 'total': str(folded.total_cost), 'seq': folded.last_sequence},
            )
        return folded

    def state_or_fold(self, variant_id: str, warehouse_id: str, strict: bool = False) -> VariantCostState:
        """
        Verified read. With `strict`, a mismatch raises instead of falling back.
        """
        state = self.verify(variant_id, warehouse_id)
        if strict and not state.matches(self.current_state(variant_id, warehouse_id)):
            raise CostRollupMismatchError(f"Cost rollup for {state.target} disagrees with the ledger.")
        return state

    @transaction.atomic
    def rebuild(self, variant_id: str, warehouse_id: str) -> VariantCostState:
        """Rewrite the rollup from the ledger under the variant lock."""
        rollup = CostLedgerService(self.tenant).lock_rollup(variant_id, warehouse_id)
        folded = self.fold(variant_id, warehouse_id)
        self.write_rollup(rollup, folded)
        logger.info(f"Rebuilt cost rollup for {folded.target}: qty={folded.qty_on_hand} total={folded.total_cost}")
        return folded

    def write_rollup(self, rollup: VariantCostRollup, folded: VariantCostState) -> None:
        """Overwrite a locked rollup with a folded state."""
        first = CostLayerEvent.objects.filter(
            tenant=self.tenant,
            saleor_variant_id=folded.saleor_variant_id,
            saleor_warehouse_id=folded.saleor_warehouse_id,
        ).order_by('sequence').values_list('currency', flat=True).first()

        rollup.qty_on_hand = folded.qty_on_hand
        rollup.total_cost = folded.total_cost
        rollup.last_wac = None if folded.wac is None else folded.wac.quantize(Decimal('0.00000001'))
        rollup.last_sequence = folded.last_sequence
        rollup.currency = first or rollup.currency
        rollup.save()

    def rebuild_all(self) -> int:
        keys = (
            CostLayerEvent.objects.filter(tenant=self.tenant)
            .order_by()
            .values_list('saleor_variant_id', 'saleor_warehouse_id')
            .distinct()
        )
        count = 0
        for variant_id, warehouse_id in sorted(set(keys)):
            self.rebuild(variant_id, warehouse_id)
            count += 1
        return count

    @staticmethod
    def _state_from_rollup(rollup: VariantCostRollup) -> VariantCostState:
        return VariantCostState(
            saleor_variant_id=rollup.saleor_variant_id,
            saleor_warehouse_id=rollup.saleor_warehouse_id,
            qty_on_hand=rollup.qty_on_hand,
            total_cost=rollup.total_cost,
            wac=rollup.wac,
            last_sequence=rollup.last_sequence,
        )
