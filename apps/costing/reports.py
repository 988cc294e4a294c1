# apps/costing/reports.py
"""
Read-only costing reports built on the ledger and its rollups.

- inventory_valuation: on-hand, WAC and value per (variant, warehouse)
- cost_history: filtered, paginated ledger events
- stock_movement_summary: received / reversed / net per (variant, warehouse)
"""
from decimal import Decimal

from django.db.models import Sum

from .models import CostLayerEvent, VariantCostRollup
from .services import round_cost

ZERO = Decimal('0')


def inventory_valuation(tenant, warehouse_id=None, include_zero=False):
    rollups = VariantCostRollup.objects.filter(tenant=tenant)
    if warehouse_id:
        rollups = rollups.filter(saleor_warehouse_id=warehouse_id)
    if not include_zero:
        rollups = rollups.exclude(qty_on_hand=0)

    labels = _variant_labels(tenant, rollups.values_list('saleor_variant_id', flat=True))
    items = []
    total_value = ZERO
    total_quantity = 0
    for rollup in rollups:
        sku, name = labels.get(rollup.saleor_variant_id, ('', ''))
        items.append({
            'saleor_variant_id': rollup.saleor_variant_id,
            'saleor_warehouse_id': rollup.saleor_warehouse_id,
            'variant_sku': sku,
            'variant_name': name,
            'qty_on_hand': rollup.qty_on_hand,
            'wac': round_cost(rollup.wac),
            'total_value': rollup.total_cost,
            'currency': rollup.currency,
            'last_sequence': rollup.last_sequence,
        })
        total_value += rollup.total_cost
        total_quantity += rollup.qty_on_hand

    return {
        'warehouse_id': warehouse_id,
        'items': items,
        'item_count': len(items),
        'total_quantity': total_quantity,
        'total_value': total_value,
    }


def cost_history(tenant, start=None, end=None, variant_id=None, warehouse_id=None,
                 event_type=None, limit=100, offset=0):
    events = CostLayerEvent.objects.filter(tenant=tenant).select_related(
        'source_receipt_line__receipt', 'source_landed_cost',
    )
    if start:
        events = events.filter(event_timestamp__gte=start)
    if end:
        events = events.filter(event_timestamp__lte=end)
    if variant_id:
        events = events.filter(saleor_variant_id=variant_id)
    if warehouse_id:
        events = events.filter(saleor_warehouse_id=warehouse_id)
    if event_type:
        events = events.filter(event_type=event_type)

    total = events.count()
    totals = events.aggregate(qty=Sum('quantity_delta'), cost=Sum('cost_delta'))
    page = list(events.order_by('-event_timestamp', '-id')[offset:offset + limit])

    rows = []
    for event in page:
        line = event.source_receipt_line
        rows.append({
            'id': event.pk,
            'event_type': event.event_type,
            'event_timestamp': event.event_timestamp,
            'sequence': event.sequence,
            'saleor_variant_id': event.saleor_variant_id,
            'saleor_warehouse_id': event.saleor_warehouse_id,
            'variant_sku': line.variant_sku if line else None,
            'variant_name': line.variant_name if line else None,
            'receipt_id': line.receipt_id if line else None,
            'receipt_number': line.receipt.receipt_number if line else None,
            'landed_cost_reference': event.source_landed_cost.reference if event.source_landed_cost else None,
            'quantity_delta': event.quantity_delta,
            'cost_delta': event.cost_delta,
            'unit_cost': event.unit_cost,
            'currency': event.currency,
            'qty_on_hand_after': event.qty_on_hand_after,
            'wac_after': round_cost(event.wac_after),
            'flagged_negative': event.flagged_negative,
        })

    return {
        'events': rows,
        'total': total,
        'has_more': offset + len(rows) < total,
        'summary': {
            'total_quantity_delta': totals['qty'] or 0,
            'total_cost_delta': totals['cost'] or ZERO,
            'events_in_page': len(rows),
        },
    }


def stock_movement_summary(tenant, start=None, end=None, warehouse_id=None, limit=50):
    events = CostLayerEvent.objects.filter(tenant=tenant)
    if start:
        events = events.filter(event_timestamp__gte=start)
    if end:
        events = events.filter(event_timestamp__lte=end)
    if warehouse_id:
        events = events.filter(saleor_warehouse_id=warehouse_id)

    summary = {}
    for variant_id, wh_id, qty, cost, currency in events.values_list(
        'saleor_variant_id', 'saleor_warehouse_id', 'quantity_delta', 'cost_delta', 'currency'
    ):
        row = summary.setdefault((variant_id, wh_id), {
            'saleor_variant_id': variant_id,
            'saleor_warehouse_id': wh_id,
            'received': 0,
            'reversed': 0,
            'net_quantity': 0,
            'net_value': ZERO,
            'currency': currency,
        })
        if qty > 0:
            row['received'] += qty
        elif qty < 0:
            row['reversed'] += -qty
        row['net_quantity'] += qty
        row['net_value'] += cost

    labels = _variant_labels(tenant, [variant_id for variant_id, _ in summary])
    items = sorted(summary.values(), key=lambda r: abs(r['net_value']), reverse=True)[:limit]
    for item in items:
        item['variant_sku'], item['variant_name'] = labels.get(item['saleor_variant_id'], ('', ''))

    return {
        'items': items,
        'total_variants': len(summary),
        'start': start,
        'end': end,
    }


def _variant_labels(tenant, variant_ids):
    """SKU and name captured on receipt lines, for display only."""
    from apps.receiving.models import GoodsReceiptLine

    labels = {}
    lines = GoodsReceiptLine.objects.filter(
        tenant=tenant, saleor_variant_id__in=set(variant_ids)
    ).order_by('id').values_list('saleor_variant_id', 'variant_sku', 'variant_name')
    for variant_id, sku, name in lines:
        labels[variant_id] = (sku, name)
    return labels
