"""
Purchase order service.

Covers the thin purchasing workflow (create, edit lines, cancel, close) and
the received-quantity rollup the goods receipt pipeline drives.

Usage:
    from apps.purchasing.services import PurchaseOrderService, PurchaseOrderLineInput

    service = PurchaseOrderService(tenant, user)
    po = service.create_purchase_order(
        supplier=supplier,
        saleor_warehouse_id='V2FyZWhvdXNlOjE=',
        lines=[PurchaseOrderLineInput('UHJvZHVjdFZhcmlhbnQ6MQ==', 10, Decimal('2.00'))],
    )
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.tenants.models import Tenant, get_next_sequence_number, get_tenant_settings
from .models import PurchaseOrder, PurchaseOrderLine

logger = logging.getLogger(__name__)


# ─── Data Classes ───────────────────────────────────────────────────────────────

@dataclass
class PurchaseOrderLineInput:
    """Input for one purchase order line."""
    saleor_variant_id: str
    quantity_ordered: int
    expected_unit_cost: Decimal
    currency: Optional[str] = None
    variant_sku: str = ''
    variant_name: str = ''
    notes: str = ''


# ─── Purchase Order Service ─────────────────────────────────────────────────────

class PurchaseOrderService:
    """
    Service for purchase order operations.

    Lines are editable while nothing has been received against them. The
    status is derived from received quantities except for CANCELLED and a
    manual CLOSED, both terminal for new receipts. Reversals still reduce
    received quantities on a manually closed PO without reopening it.
    """

    def __init__(self, tenant: Tenant, user=None):
        self.tenant = tenant
        self.user = user

    @transaction.atomic
    def create_purchase_order(
        self,
        supplier,
        saleor_warehouse_id: str,
        lines: Optional[List[PurchaseOrderLineInput]] = None,
        expected_delivery_date=None,
        notes: str = '',
    ) -> PurchaseOrder:
        if not supplier.is_active:
            raise ValidationError(f"Supplier {supplier.code} is inactive.")
        if not saleor_warehouse_id:
            raise ValidationError("A Saleor warehouse is required.")

        po = PurchaseOrder.objects.create(
            tenant=self.tenant,
            po_number=get_next_sequence_number(self.tenant, 'PO'),
            supplier=supplier,
            saleor_warehouse_id=saleor_warehouse_id,
            expected_delivery_date=expected_delivery_date,
            notes=notes,
            created_by=self.user,
        )
        for line in lines or []:
            self.add_line(po, line)

        logger.info(f"Created purchase order {po.po_number} for supplier {supplier.code}")
        return po

    def add_line(self, po: PurchaseOrder, line: PurchaseOrderLineInput) -> PurchaseOrderLine:
        if not po.is_receivable:
            raise ValidationError(f"Cannot add lines to a {po.get_status_display().lower()} purchase order.")
        self._validate_line(line)

        last = po.lines.order_by('-line_number').values_list('line_number', flat=True).first() or 0
        return PurchaseOrderLine.objects.create(
            tenant=self.tenant,
            purchase_order=po,
            line_number=last + 10,
            saleor_variant_id=line.saleor_variant_id,
            variant_sku=line.variant_sku,
            variant_name=line.variant_name,
            quantity_ordered=line.quantity_ordered,
            expected_unit_cost=line.expected_unit_cost,
            currency=(line.currency or self._base_currency()).upper(),
            notes=line.notes,
        )

    def update_line(self, po_line: PurchaseOrderLine, **changes) -> PurchaseOrderLine:
        if po_line.quantity_received != 0:
            raise ValidationError("Lines with received quantity cannot be edited.")
        if not po_line.purchase_order.is_receivable:
            raise ValidationError("Purchase order is not open.")

        editable = {
            'saleor_variant_id', 'variant_sku', 'variant_name',
            'quantity_ordered', 'expected_unit_cost', 'currency', 'notes',
        }
        unknown = set(changes) - editable
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            setattr(po_line, field, value)
        self._validate_line(po_line)
        po_line.save()
        return po_line

    def remove_line(self, po_line: PurchaseOrderLine) -> None:
        if po_line.quantity_received != 0:
            raise ValidationError("Lines with received quantity cannot be removed.")
        po_line.delete()

    @transaction.atomic
    def cancel(self, po: PurchaseOrder) -> PurchaseOrder:
        po = PurchaseOrder.objects.select_for_update().get(pk=po.pk, tenant=self.tenant)
        if po.status == PurchaseOrder.Status.CANCELLED:
            raise ValidationError(f"{po.po_number} is already cancelled.")
        if po.lines.exclude(quantity_received=0).exists():
            raise ValidationError(f"{po.po_number} has received goods and cannot be cancelled.")
        po.status = PurchaseOrder.Status.CANCELLED
        po.save(update_fields=['status', 'updated_at'])
        logger.info(f"Cancelled purchase order {po.po_number}")
        return po

    @transaction.atomic
    def close(self, po: PurchaseOrder) -> PurchaseOrder:
        po = PurchaseOrder.objects.select_for_update().get(pk=po.pk, tenant=self.tenant)
        if po.status == PurchaseOrder.Status.CANCELLED:
            raise ValidationError(f"{po.po_number} is cancelled.")
        po.status = PurchaseOrder.Status.CLOSED
        po.closed_manually = True
        po.save(update_fields=['status', 'closed_manually', 'updated_at'])
        logger.info(f"Closed purchase order {po.po_number}")
        return po

    # ─── Receipt Rollup ─────────────────────────────────────────────────────────

    def apply_received_quantities(self, po: PurchaseOrder, deltas: Dict[int, int]) -> PurchaseOrder:
        """
        Add signed received quantities to PO lines and re-derive the status.

        Must run inside the caller's posting transaction; the PO row is locked
        so concurrent receipts against one PO serialize here.

        Args:
            po: PurchaseOrder being received against
            deltas: {purchase_order_line_id: signed quantity}

        Raises:
            ValidationError: positive quantities against a cancelled or
                manually closed PO, or a line of another PO
        """
        po = PurchaseOrder.objects.select_for_update().get(pk=po.pk, tenant=self.tenant)
        if any(qty > 0 for qty in deltas.values()) and not self.accepts_receipts(po):
            raise ValidationError(
                f"Cannot receive against {po.po_number}: it is {po.get_status_display().lower()}."
            )
        lines = {
            line.pk: line
            for line in PurchaseOrderLine.objects.select_for_update().filter(
                purchase_order=po, pk__in=list(deltas)
            )
        }
        for line_id, qty in deltas.items():
            line = lines.get(line_id)
            if line is None:
                raise ValidationError(f"Line {line_id} does not belong to {po.po_number}.")
            line.quantity_received += qty
            line.save(update_fields=['quantity_received', 'updated_at'])

        new_status = self.derive_status(po)
        if new_status != po.status:
            logger.info(f"{po.po_number} status {po.status} -> {new_status}")
            po.status = new_status
            po.save(update_fields=['status', 'updated_at'])
        return po

    @staticmethod
    def accepts_receipts(po: PurchaseOrder) -> bool:
        """Posting is allowed unless the PO is cancelled or was closed by hand."""
        return po.status != PurchaseOrder.Status.CANCELLED and not po.closed_manually

    @staticmethod
    def derive_status(po: PurchaseOrder) -> str:
        if po.status == PurchaseOrder.Status.CANCELLED:
            return po.status
        if po.closed_manually:
            return PurchaseOrder.Status.CLOSED

        received = list(po.lines.values_list('quantity_ordered', 'quantity_received'))
        if not received or all(r <= 0 for _, r in received):
            return PurchaseOrder.Status.OPEN
        if all(r >= o for o, r in received):
            return PurchaseOrder.Status.CLOSED
        return PurchaseOrder.Status.PARTIALLY_RECEIVED

    # ─── Helpers ────────────────────────────────────────────────────────────────

    def _base_currency(self) -> str:
        return get_tenant_settings(self.tenant).currency

    @staticmethod
    def _validate_line(line) -> None:
        if not line.saleor_variant_id:
            raise ValidationError("A Saleor variant is required.")
        if line.quantity_ordered is None or int(line.quantity_ordered) <= 0:
            raise ValidationError("Ordered quantity must be positive.")
        if line.expected_unit_cost is None or Decimal(line.expected_unit_cost) < 0:
            raise ValidationError("Expected unit cost cannot be negative.")
