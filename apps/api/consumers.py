"""
WebSocket consumer for goods receipt and Saleor sync updates.

Every connection joins its tenant's `receiving_{tenant_id}` group. A client
may narrow the stream to specific receipts:

    -> {"type": "watch", "receipt_ids": [12, 13]}
    -> {"type": "unwatch", "receipt_ids": [12]}
    -> {"type": "ping"}

With no watched receipts every event of the tenant is relayed.
"""

import logging
import time
from collections import deque

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGES = 30
RATE_LIMIT_WINDOW_SECONDS = 60
MAX_WATCHED_RECEIPTS = 100


class ReceivingConsumer(AsyncJsonWebsocketConsumer):
    """Relays receipt_updated and posting_updated events for one tenant."""

    async def connect(self):
        user = self.scope.get('user')
        if not user or isinstance(user, AnonymousUser):
            logger.warning('Receiving websocket rejected: unauthenticated')
            await self.close()
            return

        self.group_name = f"receiving_{user.tenant_id or 'default'}"
        self._watched = set()
        self._recent = deque()

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f'Receiving websocket connected: user={user.username}, group={self.group_name}')
        await self.send_json({'type': 'connection_established', 'group': self.group_name})

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f'Receiving websocket closed: channel={self.channel_name}, code={close_code}')

    def _throttled(self) -> bool:
        now = time.monotonic()
        while self._recent and self._recent[0] < now - RATE_LIMIT_WINDOW_SECONDS:
            self._recent.popleft()
        if len(self._recent) >= RATE_LIMIT_MESSAGES:
            return True
        self._recent.append(now)
        return False

    async def receive_json(self, content):
        if self._throttled():
            await self.send_json({'type': 'error', 'message': 'Rate limit exceeded. Please slow down.'})
            return

        msg_type = content.get('type')
        if msg_type == 'ping':
            await self.send_json({'type': 'pong'})
        elif msg_type in ('watch', 'unwatch'):
            try:
                ids = {int(pk) for pk in content.get('receipt_ids', [])}
            except (TypeError, ValueError):
                await self.send_json({'type': 'error', 'message': 'receipt_ids must be integers'})
                return
            if msg_type == 'watch':
                self._watched |= ids
            else:
                self._watched -= ids
            if len(self._watched) > MAX_WATCHED_RECEIPTS:
                self._watched = set(sorted(self._watched)[:MAX_WATCHED_RECEIPTS])
            await self.send_json({'type': 'watching', 'receipt_ids': sorted(self._watched)})
        else:
            logger.debug(f'Unknown receiving websocket message: {msg_type}')

    def _wanted(self, receipt_id) -> bool:
        return not self._watched or receipt_id in self._watched

    async def receiving_receipt_updated(self, event):
        data = event['data']
        if self._wanted(data.get('receipt_id')) or self._wanted(data.get('reversal_of')):
            await self.send_json(data)

    async def receiving_posting_updated(self, event):
        data = event['data']
        # Landed cost postings have no receipt and are always relayed
        if data.get('goods_receipt') is None or self._wanted(data['goods_receipt']):
            await self.send_json(data)
