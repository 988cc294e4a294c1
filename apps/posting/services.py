"""
External posting orchestrator.

Applies the net stock/cost effect of a posted receipt, reversal or landed
cost allocation to Saleor at most once.

Protocol per (source document, target):
1. enqueue_*: inside the posting transaction, aggregate the ledger events of
   the source per target and insert a PENDING SaleorPostingRecord
   (insert-if-absent on the unique idempotency key)
2. process_*: after commit, outside every lock
   - APPLIED -> return immediately
   - claim the record with a conditional update (lease), call the gateway
   - success -> APPLIED with the external reference
   - failure -> FAILED with the error; timeout -> stays PENDING
   Records are never deleted, so retries always land on the same key.

The receipt or landed cost is never rolled back because of a posting failure;
the ledger is the source of truth and posting catches up eventually.

Usage:
    orchestrator = PostingOrchestrator(tenant)
    results = orchestrator.process_receipt(receipt)
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.api.broadcasts import broadcast_posting_update
from apps.costing.models import CostLayerEvent
from apps.costing.services import WACAggregator, round_cost
from core.models import AuditLog
from .models import SaleorPostingRecord
from .saleor import SaleorError, SaleorTimeoutError, get_gateway

logger = logging.getLogger(__name__)


# ─── Data Classes ───────────────────────────────────────────────────────────────

@dataclass
class PostingDelta:
    """Net effect of one source document on one Saleor target."""
    saleor_variant_id: str
    saleor_warehouse_id: str
    quantity_delta: int = 0
    cost_delta: Decimal = Decimal('0')
    currency: str = ''

    @property
    def target(self) -> str:
        return f"{self.saleor_variant_id}@{self.saleor_warehouse_id}"


@dataclass
class PostingResult:
    idempotency_key: str
    status: str
    called_gateway: bool = False
    error: str = ''

    @property
    def ok(self) -> bool:
        return self.status == SaleorPostingRecord.Status.APPLIED


# ─── Exceptions ─────────────────────────────────────────────────────────────────

class PostingError(Exception):
    """An external posting attempt failed; the record is FAILED (or PENDING after a timeout)."""
    def __init__(self, record: SaleorPostingRecord, message: str):
        self.record = record
        super().__init__(f"{record.idempotency_key}: {message}")


# ─── Posting Orchestrator ───────────────────────────────────────────────────────

class PostingOrchestrator:

    def __init__(self, tenant, gateway=None):
        self.tenant = tenant
        self._gateway = gateway

    @property
    def gateway(self):
        if self._gateway is None:
            self._gateway = get_gateway(self.tenant)
        return self._gateway

    @property
    def lease_seconds(self) -> int:
        return int(settings.SALEOR_TIMEOUT_SECONDS) * 2 + 30

    # ─── Enqueue (inside the posting transaction) ───────────────────────────────

    def enqueue_receipt(self, receipt) -> List[SaleorPostingRecord]:
        events = CostLayerEvent.objects.filter(tenant=self.tenant, source_receipt_line__receipt=receipt)
        return self._enqueue(events, f"GR-{receipt.pk}", goods_receipt=receipt)

    def enqueue_landed_cost(self, landed_cost) -> List[SaleorPostingRecord]:
        events = CostLayerEvent.objects.filter(
            tenant=self.tenant, source_landed_cost=landed_cost, reversal_of_event__isnull=True,
        )
        return self._enqueue(events, f"LC-{landed_cost.pk}", landed_cost=landed_cost)

    def _enqueue(self, events, key_prefix: str, **source) -> List[SaleorPostingRecord]:
        deltas = self.aggregate(events)
        aggregator = WACAggregator(self.tenant)
        records = []
        for delta in deltas:
            # The rollup rows are still locked by the caller's transaction, so
            # this is exactly the state this source produced.
            state = aggregator.current_state(delta.saleor_variant_id, delta.saleor_warehouse_id)
            key = f"{key_prefix}:{delta.target}"
            unit_cost = round_cost(state.wac)
            defaults = dict(
                target=delta.target,
                saleor_variant_id=delta.saleor_variant_id,
                saleor_warehouse_id=delta.saleor_warehouse_id,
                quantity_delta=delta.quantity_delta,
                cost_delta=delta.cost_delta,
                quantity_after=state.qty_on_hand,
                unit_cost=unit_cost,
                currency=delta.currency,
                ledger_sequence=state.last_sequence,
                request_payload={
                    'target': delta.target,
                    'quantity_delta': delta.quantity_delta,
                    'quantity_after': state.qty_on_hand,
                    'new_unit_cost': None if unit_cost is None else str(unit_cost),
                    'currency': delta.currency,
                },
                **source,
            )
            records.append(self._insert_if_absent(key, defaults))
        return records

    def _insert_if_absent(self, key: str, defaults: dict) -> SaleorPostingRecord:
        existing = SaleorPostingRecord.objects.filter(tenant=self.tenant, idempotency_key=key).first()
        if existing:
            return existing
        try:
            with transaction.atomic():
                return SaleorPostingRecord.objects.create(tenant=self.tenant, idempotency_key=key, **defaults)
        except IntegrityError:
            return SaleorPostingRecord.objects.get(tenant=self.tenant, idempotency_key=key)

    @staticmethod
    def aggregate(events) -> List[PostingDelta]:
        """Net quantity/cost per target, in first-seen order."""
        deltas = OrderedDict()
        for event in events.order_by('id'):
            key = (event.saleor_variant_id, event.saleor_warehouse_id)
            delta = deltas.get(key)
            if delta is None:
                delta = deltas[key] = PostingDelta(*key, currency=event.currency)
            delta.quantity_delta += event.quantity_delta
            delta.cost_delta += event.cost_delta
        return list(deltas.values())

    # ─── Process (outside any transaction lock) ─────────────────────────────────

    def process_receipt(self, receipt) -> List[PostingResult]:
        records = SaleorPostingRecord.objects.filter(tenant=self.tenant, goods_receipt=receipt)
        return self._process_many(records)

    def process_landed_cost(self, landed_cost) -> List[PostingResult]:
        records = SaleorPostingRecord.objects.filter(tenant=self.tenant, landed_cost=landed_cost)
        return self._process_many(records)

    def process_pending(self, statuses=None, limit: Optional[int] = None,
                        older_than: Optional[timedelta] = None) -> List[PostingResult]:
        """Retry driver entry point: PENDING/FAILED records, oldest first."""
        statuses = statuses or [SaleorPostingRecord.Status.PENDING, SaleorPostingRecord.Status.FAILED]
        records = SaleorPostingRecord.objects.filter(tenant=self.tenant, status__in=statuses)
        if older_than is not None:
            records = records.filter(created_at__lte=timezone.now() - older_than)
        records = records.order_by('target', 'ledger_sequence', 'id')
        if limit:
            records = records[:limit]
        return self._process_many(records)

    def _process_many(self, records) -> List[PostingResult]:
        results = []
        for record in records:
            try:
                results.append(self.process_record(record))
            except PostingError as e:
                results.append(PostingResult(record.idempotency_key, e.record.status, True, str(e)))
        return results

    def process_record(self, record: SaleorPostingRecord) -> PostingResult:
        """
        Apply one record at most once.

        Raises:
            PostingError: the gateway call failed (record FAILED) or timed out
                (record left PENDING for the retry driver)
        """
        Status = SaleorPostingRecord.Status
        record.refresh_from_db()
        if record.status == Status.APPLIED:
            return PostingResult(record.idempotency_key, record.status)

        superseding = self._superseding_record(record)
        if superseding is not None:
            # A later absolute stock/cost value for this target is already in
            # Saleor; sending this one would roll it back.
            self._mark_applied(record, f"superseded:{superseding.idempotency_key}")
            logger.info(f"{record.idempotency_key} superseded by {superseding.idempotency_key}")
            return PostingResult(record.idempotency_key, Status.APPLIED)

        if not self._claim(record):
            record.refresh_from_db()
            return PostingResult(record.idempotency_key, record.status, error='attempt already in flight')

        try:
            result = self.gateway.apply_delta(
                record.target,
                record.quantity_delta,
                record.unit_cost,
                record.currency,
                record.idempotency_key,
                quantity_after=record.quantity_after,
            )
        except SaleorTimeoutError as e:
            self._release(record, str(e))
            logger.warning(f"Posting {record.idempotency_key} timed out; left PENDING for retry")
            raise PostingError(record, str(e)) from e
        except (SaleorError, ValueError) as e:
            self._mark_failed(record, str(e))
            raise PostingError(record, str(e)) from e

        if not result.accepted:
            message = result.message or 'rejected by Saleor'
            self._mark_failed(record, message)
            raise PostingError(record, message)

        self._mark_applied(record, result.external_reference)
        logger.info(
            f"Applied {record.idempotency_key}: qty {record.quantity_delta:+d} -> {record.quantity_after}, "
            f"cost {record.unit_cost} {record.currency}"
        )
        return PostingResult(record.idempotency_key, Status.APPLIED, called_gateway=True)

    # ─── Conditional status transitions ─────────────────────────────────────────

    def _superseding_record(self, record) -> Optional[SaleorPostingRecord]:
        return SaleorPostingRecord.objects.filter(
            tenant=self.tenant,
            target=record.target,
            status=SaleorPostingRecord.Status.APPLIED,
            ledger_sequence__gt=record.ledger_sequence,
        ).order_by('-ledger_sequence').first()

    def _claim(self, record) -> bool:
        now = timezone.now()
        claimed = SaleorPostingRecord.objects.filter(
            pk=record.pk,
            status__in=[SaleorPostingRecord.Status.PENDING, SaleorPostingRecord.Status.FAILED],
        ).filter(
            Q(lease_expires_at__isnull=True) | Q(lease_expires_at__lte=now)
        ).update(
            attempts=F('attempts') + 1,
            last_attempt_at=now,
            lease_expires_at=now + timedelta(seconds=self.lease_seconds),
            updated_at=now,
        )
        return claimed == 1

    def _release(self, record, message: str) -> None:
        """Outcome unknown: back to PENDING with the lease cleared, whatever the prior status."""
        SaleorPostingRecord.objects.filter(pk=record.pk).exclude(
            status=SaleorPostingRecord.Status.APPLIED
        ).update(
            status=SaleorPostingRecord.Status.PENDING,
            lease_expires_at=None, error_message=message, updated_at=timezone.now(),
        )
        record.refresh_from_db()

    def _mark_applied(self, record, reference: str) -> None:
        now = timezone.now()
        SaleorPostingRecord.objects.filter(pk=record.pk).exclude(
            status=SaleorPostingRecord.Status.APPLIED
        ).update(
            status=SaleorPostingRecord.Status.APPLIED,
            external_reference=reference[:255],
            error_message='',
            applied_at=now,
            lease_expires_at=None,
            updated_at=now,
        )
        record.refresh_from_db()
        broadcast_posting_update(record)

    def _mark_failed(self, record, message: str) -> None:
        SaleorPostingRecord.objects.filter(pk=record.pk).exclude(
            status=SaleorPostingRecord.Status.APPLIED
        ).update(
            status=SaleorPostingRecord.Status.FAILED,
            error_message=message,
            lease_expires_at=None,
            updated_at=timezone.now(),
        )
        record.refresh_from_db()
        broadcast_posting_update(record)
        logger.warning(f"Posting {record.idempotency_key} failed (attempt {record.attempts}): {message}")
        AuditLog.record(record, AuditLog.Action.SYNC_FAILED, attempts=record.attempts, error=message)
