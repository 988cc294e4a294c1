"""
Goods receipt state machine.

DRAFT -> POSTED -> REVERSED

- Lines are editable only in DRAFT.
- post_receipt validates everything up front, then in one transaction marks
  the receipt POSTED, appends one RECEIPT cost layer event per line, rolls
  received quantities into the purchase order and enqueues Saleor postings.
- reverse_receipt creates a compensating receipt (reversal_of=original),
  posts it with REVERSAL events of inverted sign, offsets any landed cost
  allocated to the original lines, and marks the original REVERSED, all in
  one transaction. Nothing is ever deleted.
- Saleor postings run after commit, outside every lock.

Usage:
    service = GoodsReceiptService(tenant, user)
    receipt = service.create_from_purchase_order(po)
    service.post_receipt(receipt)
    reversal = service.reverse_receipt(receipt)
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.api.broadcasts import broadcast_receipt_update
from apps.costing.models import CostLayerEvent
from apps.costing.services import CostLedgerService
from apps.posting.services import PostingOrchestrator
from apps.purchasing.models import PurchaseOrder, PurchaseOrderLine
from apps.purchasing.services import PurchaseOrderService
from apps.tenants.models import Tenant, get_next_sequence_number, get_tenant_settings
from core.models import AuditLog
from shared.models import TenantContext
from .models import GoodsReceipt, GoodsReceiptLine

logger = logging.getLogger(__name__)


# ─── Data Classes ───────────────────────────────────────────────────────────────

@dataclass
class ReceiptLineInput:
    """Input for one goods receipt line."""
    saleor_variant_id: str
    quantity_received: int
    unit_cost: Decimal
    currency: Optional[str] = None
    purchase_order_line: Optional[PurchaseOrderLine] = None
    variant_sku: str = ''
    variant_name: str = ''
    notes: str = ''


# ─── Exceptions ─────────────────────────────────────────────────────────────────

class ReceiptStateError(ValidationError):
    """Operation not allowed in the receipt's current state."""
    pass


class ReceiptConflictError(ReceiptStateError):
    """Receipt already reversed, is itself a reversal, or changed concurrently."""
    pass


# ─── Goods Receipt Service ──────────────────────────────────────────────────────

class GoodsReceiptService:

    def __init__(self, tenant: Tenant, user=None, orchestrator: Optional[PostingOrchestrator] = None):
        self.tenant = tenant
        self.user = user
        self.orchestrator = orchestrator or PostingOrchestrator(tenant)

    # ─── Draft editing ──────────────────────────────────────────────────────────

    @transaction.atomic
    def create_receipt(self, purchase_order: PurchaseOrder, lines: Optional[List[ReceiptLineInput]] = None,
                       notes: str = '') -> GoodsReceipt:
        """
        Create a DRAFT receipt against a purchase order.

        Args:
            purchase_order: PurchaseOrder being received; must be OPEN or
                PARTIALLY_RECEIVED
            lines: Optional initial lines, added in order and numbered from 1
            notes: Free-text notes

        Returns:
            The new GoodsReceipt with its next GR- number

        Raises:
            ReceiptStateError: the purchase order is not receivable
        """
        if not purchase_order.is_receivable:
            raise ReceiptStateError(
                f"Cannot receive against {purchase_order.po_number}: "
                f"it is {purchase_order.get_status_display().lower()}."
            )

        receipt = GoodsReceipt.objects.create(
            tenant=self.tenant,
            receipt_number=get_next_sequence_number(self.tenant, 'GR'),
            purchase_order=purchase_order,
            notes=notes,
            created_by=self._user_or_none(),
        )
        for line in lines or []:
            self.add_line(receipt, line)

        AuditLog.record(receipt, AuditLog.Action.CREATE, user=self.user, purchase_order=purchase_order.po_number)
        logger.info(f"Created goods receipt {receipt.receipt_number} for {purchase_order.po_number}")
        return receipt

    def create_from_purchase_order(self, purchase_order: PurchaseOrder, notes: str = '') -> GoodsReceipt:
        """Draft receipt pre-filled with each PO line's remaining quantity and expected cost."""
        lines = [
            ReceiptLineInput(
                saleor_variant_id=po_line.saleor_variant_id,
                quantity_received=po_line.quantity_remaining,
                unit_cost=po_line.expected_unit_cost,
                currency=po_line.currency,
                purchase_order_line=po_line,
                variant_sku=po_line.variant_sku,
                variant_name=po_line.variant_name,
            )
            for po_line in purchase_order.lines.all()
            if po_line.quantity_remaining > 0
        ]
        return self.create_receipt(purchase_order, lines, notes=notes)

    def add_line(self, receipt: GoodsReceipt, line: ReceiptLineInput) -> GoodsReceiptLine:
        """
        Append a line to a DRAFT receipt.

        Args:
            receipt: DRAFT GoodsReceipt
            line: ReceiptLineInput; currency defaults to the tenant currency

        Returns:
            The new GoodsReceiptLine, numbered after the current last line

        Raises:
            ReceiptStateError: receipt is not DRAFT
            ValidationError: the PO line belongs to another purchase order
        """
        self._require_draft(receipt)
        if line.purchase_order_line is not None and line.purchase_order_line.purchase_order_id != receipt.purchase_order_id:
            raise ValidationError("Purchase order line belongs to a different purchase order.")

        last = receipt.lines.order_by('-line_number').values_list('line_number', flat=True).first() or 0
        return GoodsReceiptLine.objects.create(
            tenant=self.tenant,
            receipt=receipt,
            purchase_order_line=line.purchase_order_line,
            line_number=last + 1,
            saleor_variant_id=line.saleor_variant_id,
            variant_sku=line.variant_sku,
            variant_name=line.variant_name,
            quantity_received=line.quantity_received,
            unit_cost=line.unit_cost,
            currency=(line.currency or get_tenant_settings(self.tenant).currency).upper(),
            notes=line.notes,
        )

    def update_line(self, line: GoodsReceiptLine, **changes) -> GoodsReceiptLine:
        """
        Change fields of a DRAFT receipt line.

        Args:
            line: GoodsReceiptLine on a DRAFT receipt
            **changes: quantity_received, unit_cost, currency, notes,
                variant_sku and/or variant_name

        Returns:
            The saved line

        Raises:
            ReceiptStateError: receipt is not DRAFT
            ValidationError: a field outside the editable set was given
        """
        self._require_draft(line.receipt)
        editable = {'quantity_received', 'unit_cost', 'currency', 'notes', 'variant_sku', 'variant_name'}
        unknown = set(changes) - editable
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        for field, value in changes.items():
            setattr(line, field, value)
        line.save()
        return line

    def remove_line(self, line: GoodsReceiptLine) -> None:
        """
        Delete a line from a DRAFT receipt. Remaining lines keep their numbers.

        Raises:
            ReceiptStateError: receipt is not DRAFT
        """
        self._require_draft(line.receipt)
        line.delete()

    @transaction.atomic
    def delete_draft(self, receipt: GoodsReceipt) -> None:
        """
        Delete a DRAFT receipt and its lines.

        Posted and reversed receipts are permanent; they can only be reversed.

        Raises:
            ReceiptStateError: receipt is not DRAFT
        """
        receipt = GoodsReceipt.objects.select_for_update().get(pk=receipt.pk, tenant=self.tenant)
        if receipt.status != GoodsReceipt.Status.DRAFT:
            raise ReceiptStateError(
                f"{receipt.receipt_number} is {receipt.status}; only DRAFT receipts can be deleted."
            )
        AuditLog.record(
            receipt, AuditLog.Action.DELETE, user=self.user,
            receipt_number=receipt.receipt_number, lines=receipt.lines.count(),
        )
        number = receipt.receipt_number
        receipt.delete()
        logger.info(f"Deleted draft goods receipt {number}")

    # ─── DRAFT -> POSTED ────────────────────────────────────────────────────────

    def validate_for_posting(self, receipt: GoodsReceipt, lines: List[GoodsReceiptLine]) -> None:
        """All checks that must pass before anything is written."""
        if receipt.status != GoodsReceipt.Status.DRAFT:
            raise ReceiptStateError(f"{receipt.receipt_number} is {receipt.status}; only DRAFT receipts can be posted.")
        if not lines:
            raise ValidationError(f"{receipt.receipt_number} has no lines.")

        po = receipt.purchase_order
        if po is None:
            raise ValidationError(f"{receipt.receipt_number} has no purchase order.")
        if not PurchaseOrderService.accepts_receipts(po):
            raise ValidationError(
                f"Cannot post against {po.get_status_display().lower()} purchase order {po.po_number}."
            )

        base_currency = get_tenant_settings(self.tenant).currency
        for line in lines:
            if line.quantity_received is None or line.quantity_received < 0:
                raise ValidationError(f"Line {line.line_number}: quantity cannot be negative.")
            if line.unit_cost is None or line.unit_cost < 0:
                raise ValidationError(f"Line {line.line_number}: unit cost cannot be negative.")
            if line.currency != base_currency:
                raise ValidationError(
                    f"Line {line.line_number}: currency {line.currency} differs from the ledger currency {base_currency}."
                )

    def post_receipt(self, receipt: GoodsReceipt) -> GoodsReceipt:
        """
        Post a DRAFT receipt.

        Raises:
            ReceiptStateError: not DRAFT
            ValidationError: bad line values, or a cancelled or manually
                closed PO (nothing written)
            NegativeStockError / ConcurrencyConflictError: from the ledger
                (the whole transaction rolls back, receipt stays DRAFT)
        """
        with transaction.atomic():
            receipt = GoodsReceipt.objects.select_for_update().select_related('purchase_order').get(
                pk=receipt.pk, tenant=self.tenant
            )
            self._lock_purchase_order(receipt)
            lines = list(receipt.lines.all())
            self.validate_for_posting(receipt, lines)

            self._post_lines(receipt, lines, CostLayerEvent.EventType.RECEIPT)
            AuditLog.record(
                receipt, AuditLog.Action.POST, user=self.user,
                lines=len(lines), total_cost=str(receipt.total_cost),
            )
            transaction.on_commit(lambda: self._after_commit(receipt.pk), robust=True)

        logger.info(f"Posted goods receipt {receipt.receipt_number} ({len(lines)} lines)")
        return receipt

    # ─── POSTED -> REVERSED ─────────────────────────────────────────────────────

    def reverse_receipt(self, receipt: GoodsReceipt, notes: str = '') -> GoodsReceipt:
        """
        Reverse a POSTED receipt. Returns the new reversal receipt.

        Raises:
            ReceiptConflictError: already reversed, a reversal itself, or not POSTED
        """
        with transaction.atomic():
            original = GoodsReceipt.objects.select_for_update().select_related('purchase_order').get(
                pk=receipt.pk, tenant=self.tenant
            )
            self._lock_purchase_order(original)
            if original.is_reversal:
                raise ReceiptConflictError(f"{original.receipt_number} is a reversal and cannot be reversed.")
            if original.reversed_by_id is not None or original.status == GoodsReceipt.Status.REVERSED:
                raise ReceiptConflictError(f"{original.receipt_number} has already been reversed.")
            if original.status != GoodsReceipt.Status.POSTED:
                raise ReceiptConflictError(f"{original.receipt_number} is {original.status}; only POSTED receipts can be reversed.")

            try:
                with transaction.atomic():
                    reversal = GoodsReceipt.objects.create(
                        tenant=self.tenant,
                        receipt_number=get_next_sequence_number(self.tenant, 'GR'),
                        purchase_order=original.purchase_order,
                        reversal_of=original,
                        notes=notes or f"Reversal of {original.receipt_number}",
                        created_by=self._user_or_none(),
                    )
            except IntegrityError as e:
                raise ReceiptConflictError(f"{original.receipt_number} has already been reversed.") from e

            originals = list(original.lines.all())
            copies = [
                GoodsReceiptLine.objects.create(
                    tenant=self.tenant,
                    receipt=reversal,
                    purchase_order_line=line.purchase_order_line,
                    line_number=line.line_number,
                    saleor_variant_id=line.saleor_variant_id,
                    variant_sku=line.variant_sku,
                    variant_name=line.variant_name,
                    quantity_received=line.quantity_received,
                    unit_cost=line.unit_cost,
                    currency=line.currency,
                )
                for line in originals
            ]

            self._post_lines(reversal, copies, CostLayerEvent.EventType.REVERSAL, originals=originals)

            original.reversed_by = reversal
            original.status = GoodsReceipt.Status.REVERSED
            original.save(update_fields=['reversed_by', 'status', 'updated_at'])

            AuditLog.record(original, AuditLog.Action.REVERSE, user=self.user, reversal=reversal.receipt_number)
            transaction.on_commit(lambda: self._after_commit(reversal.pk, original.pk), robust=True)

        logger.info(f"Reversed goods receipt {original.receipt_number} with {reversal.receipt_number}")
        return reversal

    # ─── Posting core ───────────────────────────────────────────────────────────

    def _post_lines(self, receipt: GoodsReceipt, lines: List[GoodsReceiptLine], event_type: str,
                    originals: Optional[List[GoodsReceiptLine]] = None) -> None:
        """Append ledger events, update the PO rollup and mark POSTED. Caller holds the transaction."""
        warehouse_id = receipt.purchase_order.saleor_warehouse_id
        ledger = CostLedgerService(self.tenant, self.user)
        ledger.lock_rollups((line.saleor_variant_id, warehouse_id) for line in lines)

        sign = -1 if event_type == CostLayerEvent.EventType.REVERSAL else 1
        po_deltas = defaultdict(int)

        if originals is not None:
            self._offset_landed_costs(ledger, warehouse_id, originals, lines)

        original_events = {}
        if originals is not None:
            for event in CostLayerEvent.objects.filter(
                tenant=self.tenant,
                source_receipt_line__in=originals,
                event_type=CostLayerEvent.EventType.RECEIPT,
            ).select_related('source_receipt_line'):
                original_events[event.source_receipt_line.line_number] = event

        for line in lines:
            quantity = sign * line.quantity_received
            ledger.append_event(
                line.saleor_variant_id,
                warehouse_id,
                event_type,
                quantity,
                sign * line.line_total,
                currency=line.currency,
                unit_cost=line.unit_cost,
                source_line=line,
                reversal_of_event=original_events.get(line.line_number),
            )
            if line.purchase_order_line_id:
                po_deltas[line.purchase_order_line_id] += quantity

        receipt.status = GoodsReceipt.Status.POSTED
        receipt.posted_at = timezone.now()
        receipt.posted_by = self._user_or_none()
        receipt.save(update_fields=['status', 'posted_at', 'posted_by', 'updated_at'])

        if po_deltas:
            PurchaseOrderService(self.tenant, self.user).apply_received_quantities(receipt.purchase_order, dict(po_deltas))

        self.orchestrator.enqueue_receipt(receipt)

    def _offset_landed_costs(self, ledger, warehouse_id, originals, copies) -> None:
        """Negative ADJUSTMENT for every landed cost share on the original lines."""
        copy_by_number = {line.line_number: line for line in copies}
        adjustments = CostLayerEvent.objects.filter(
            tenant=self.tenant,
            source_receipt_line__in=originals,
            event_type=CostLayerEvent.EventType.ADJUSTMENT,
            reversal_of_event__isnull=True,
        ).select_related('source_receipt_line').order_by('id')

        for adjustment in adjustments:
            ledger.append_event(
                adjustment.saleor_variant_id,
                adjustment.saleor_warehouse_id,
                CostLayerEvent.EventType.ADJUSTMENT,
                -adjustment.quantity_delta,
                -adjustment.cost_delta,
                currency=adjustment.currency,
                source_line=copy_by_number[adjustment.source_receipt_line.line_number],
                source_landed_cost=adjustment.source_landed_cost,
                reversal_of_event=adjustment,
            )

    # ─── After commit ───────────────────────────────────────────────────────────

    def _after_commit(self, *receipt_ids) -> None:
        """Push to Saleor and notify clients. Runs outside the posting transaction."""
        with TenantContext(self.tenant):
            for receipt in GoodsReceipt.objects.filter(pk__in=receipt_ids):
                if settings.POSTING_SYNC_ON_COMMIT and receipt.posting_records.exists():
                    results = self.orchestrator.process_receipt(receipt)
                    failed = [r for r in results if not r.ok]
                    if failed:
                        logger.warning(
                            f"{receipt.receipt_number}: {len(failed)} Saleor posting(s) not applied; "
                            f"left for the retry driver"
                        )
                broadcast_receipt_update(receipt)

    # ─── Helpers ────────────────────────────────────────────────────────────────

    def _lock_purchase_order(self, receipt: GoodsReceipt) -> None:
        """Lock the receipt's PO so its status cannot change between validation and posting."""
        if receipt.purchase_order_id is not None:
            receipt.purchase_order = PurchaseOrder.objects.select_for_update().get(
                pk=receipt.purchase_order_id, tenant=self.tenant
            )

    def _require_draft(self, receipt: GoodsReceipt) -> None:
        if receipt.status != GoodsReceipt.Status.DRAFT:
            raise ReceiptStateError(f"{receipt.receipt_number} is {receipt.status}; lines can only change in DRAFT.")

    def _user_or_none(self):
        return self.user if getattr(self.user, 'is_authenticated', False) else None
