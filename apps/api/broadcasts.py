"""
Broadcast utilities for WebSocket real-time updates.

These functions send updates to connected WebSocket clients via Django Channels.
Services call them after commit so clients see receipt and sync status changes
without polling.
"""

import logging
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def _get_receiving_group(tenant_id: Optional[int] = None) -> str:
    """Get the receiving group name for a tenant."""
    if tenant_id:
        return f'receiving_{tenant_id}'
    return 'receiving_default'


def _broadcast_to_group(group_name: str, event_type: str, data: dict) -> None:
    """
    Send one event to a channel group.

    Args:
        group_name: The channel layer group to broadcast to
        event_type: Maps to the consumer handler, e.g. 'receiving.receipt.updated'
        data: The payload to send to clients
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning('Channel layer not configured, skipping broadcast')
        return

    try:
        async_to_sync(channel_layer.group_send)(
            group_name,
            {
                'type': event_type,
                'data': data,
            }
        )
    except Exception as e:
        # Broadcast is best effort; the posting already committed
        logger.error(f'Failed to broadcast {event_type}: {e}')


def broadcast_receipt_update(receipt) -> None:
    """Notify clients of a receipt's lifecycle and sync status."""
    group_name = _get_receiving_group(receipt.tenant_id)
    _broadcast_to_group(
        group_name,
        'receiving.receipt.updated',
        {
            'event': 'receipt_updated',
            'receipt_id': receipt.pk,
            'receipt_number': receipt.receipt_number,
            'status': receipt.status,
            'sync_status': receipt.sync_status,
            'reversal_of': receipt.reversal_of_id,
        }
    )
    logger.debug(f'Broadcast receipt_updated: id={receipt.pk}, tenant={receipt.tenant_id}')


def broadcast_posting_update(record) -> None:
    """Notify clients that a Saleor posting record changed state."""
    group_name = _get_receiving_group(record.tenant_id)
    _broadcast_to_group(
        group_name,
        'receiving.posting.updated',
        {
            'event': 'posting_updated',
            'idempotency_key': record.idempotency_key,
            'target': record.target,
            'status': record.status,
            'attempts': record.attempts,
            'goods_receipt': record.goods_receipt_id,
            'landed_cost': record.landed_cost_id,
            'error': record.error_message,
        }
    )
