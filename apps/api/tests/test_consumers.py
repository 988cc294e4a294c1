# apps/api/tests/test_consumers.py
"""
Tests for ReceivingConsumer over the in-memory channel layer.
"""
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase

from apps.api.consumers import ReceivingConsumer
from users.models import User


class _WithUser:
    """Stand-in for JWTAuthMiddleware that puts a fixed user in the scope."""

    def __init__(self, app, user):
        self.app = app
        self.user = user

    async def __call__(self, scope, receive, send):
        return await self.app({**scope, 'user': self.user}, receive, send)


class ReceivingConsumerTest(SimpleTestCase):
    # Channels closes stale connections around each consumer call
    databases = '__all__'

    def setUp(self):
        self.user = User(username='clerk', tenant_id=7)

    async def _connect(self, user):
        communicator = WebsocketCommunicator(_WithUser(ReceivingConsumer.as_asgi(), user), '/ws/receiving/')
        connected, _ = await communicator.connect()
        return communicator, connected

    async def _send(self, event_type, data):
        await get_channel_layer().group_send('receiving_7', {'type': event_type, 'data': data})

    async def test_anonymous_rejected(self):
        communicator, connected = await self._connect(AnonymousUser())
        self.assertFalse(connected)

    async def test_ping(self):
        communicator, connected = await self._connect(self.user)
        self.assertTrue(connected)
        hello = await communicator.receive_json_from()
        self.assertEqual(hello['group'], 'receiving_7')

        await communicator.send_json_to({'type': 'ping'})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'pong'})
        await communicator.disconnect()

    async def test_relays_tenant_events(self):
        communicator, _ = await self._connect(self.user)
        await communicator.receive_json_from()

        await self._send('receiving.receipt.updated', {'event': 'receipt_updated', 'receipt_id': 1})
        message = await communicator.receive_json_from()
        self.assertEqual(message['receipt_id'], 1)
        await communicator.disconnect()

    async def test_watch_filters_receipts(self):
        communicator, _ = await self._connect(self.user)
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'watch', 'receipt_ids': [2]})
        self.assertEqual(await communicator.receive_json_from(), {'type': 'watching', 'receipt_ids': [2]})

        await self._send('receiving.receipt.updated', {'event': 'receipt_updated', 'receipt_id': 1})
        self.assertTrue(await communicator.receive_nothing())

        await self._send('receiving.posting.updated', {'event': 'posting_updated', 'goods_receipt': 2})
        message = await communicator.receive_json_from()
        self.assertEqual(message['event'], 'posting_updated')

        await self._send('receiving.posting.updated', {'event': 'posting_updated', 'goods_receipt': None})
        message = await communicator.receive_json_from()
        self.assertIsNone(message['goods_receipt'])
        await communicator.disconnect()

    async def test_watch_rejects_bad_ids(self):
        communicator, _ = await self._connect(self.user)
        await communicator.receive_json_from()

        await communicator.send_json_to({'type': 'watch', 'receipt_ids': ['abc']})
        message = await communicator.receive_json_from()
        self.assertEqual(message['type'], 'error')
        await communicator.disconnect()
