"""
WebSocket URL routing for the API app.

- /ws/receiving/  - Goods receipt lifecycle and Saleor sync status
"""

from django.urls import re_path

from apps.api.consumers import ReceivingConsumer

websocket_urlpatterns = [
    re_path(r'ws/receiving/$', ReceivingConsumer.as_asgi()),
]
