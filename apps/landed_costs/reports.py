# apps/landed_costs/reports.py
"""
Landed cost summaries for goods receipts.

- receipt_landed_costs: per-line and per-receipt allocated landed cost,
  broken down by cost type, with the landed cost per unit and the landed
  unit cost (receipt unit cost plus landed cost per unit)

Amounts are the allocations as made. A reversed receipt keeps its
allocations here; the ledger carries the offsetting adjustments.
"""
from decimal import Decimal

from apps.costing.services import round_cost
from apps.receiving.models import GoodsReceiptLine
from .models import LandedCostAllocation

ZERO = Decimal('0')


def receipt_landed_costs(tenant, receipt):
    lines = list(
        GoodsReceiptLine.objects.filter(tenant=tenant, receipt=receipt).order_by('line_number')
    )
    allocations = (
        LandedCostAllocation.objects.filter(tenant=tenant, receipt_line__receipt=receipt)
        .select_related('landed_cost')
        .order_by('landed_cost_id', 'id')
    )

    by_line = {line.pk: {} for line in lines}
    receipt_by_type = {}
    references = []
    for allocation in allocations:
        landed_cost = allocation.landed_cost
        line_types = by_line[allocation.receipt_line_id]
        line_types[landed_cost.cost_type] = line_types.get(landed_cost.cost_type, ZERO) + allocation.amount
        receipt_by_type[landed_cost.cost_type] = receipt_by_type.get(landed_cost.cost_type, ZERO) + allocation.amount
        if landed_cost.reference not in references:
            references.append(landed_cost.reference)

    rows = []
    goods_total = ZERO
    landed_total = ZERO
    for line in lines:
        line_landed = sum(by_line[line.pk].values(), ZERO)
        per_unit = line_landed / line.quantity_received if line.quantity_received > 0 else None
        rows.append({
            'receipt_line': line.pk,
            'line_number': line.line_number,
            'saleor_variant_id': line.saleor_variant_id,
            'variant_sku': line.variant_sku,
            'quantity_received': line.quantity_received,
            'unit_cost': line.unit_cost,
            'line_total': line.line_total,
            'landed_cost_by_type': by_line[line.pk],
            'landed_cost_total': line_landed,
            'landed_cost_per_unit': round_cost(per_unit),
            'landed_unit_cost': None if per_unit is None else round_cost(line.unit_cost + per_unit),
        })
        goods_total += line.line_total
        landed_total += line_landed

    return {
        'receipt_id': receipt.pk,
        'receipt_number': receipt.receipt_number,
        'status': receipt.status,
        'landed_costs': references,
        'lines': rows,
        'landed_cost_by_type': receipt_by_type,
        'goods_total': goods_total,
        'landed_cost_total': landed_total,
        'landed_total_cost': goods_total + landed_total,
    }
