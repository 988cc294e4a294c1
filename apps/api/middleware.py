"""
WebSocket middleware for authentication.

Clients pass a SimpleJWT access token: ws://host/ws/receiving/?token=<jwt>
"""

import logging
from urllib.parse import parse_qs

from channels.middleware import BaseMiddleware
from channels.db import database_sync_to_async
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser

from rest_framework_simplejwt.tokens import AccessToken
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """Sets scope['user'] from the `token` query parameter."""

    async def __call__(self, scope, receive, send):
        query_params = parse_qs(scope.get('query_string', b'').decode('utf-8'))
        token = (query_params.get('token') or [None])[0]

        if token:
            scope['user'] = await self.get_user_from_token(token)
        else:
            scope['user'] = AnonymousUser()
        return await super().__call__(scope, receive, send)

    @database_sync_to_async
    def get_user_from_token(self, token: str):
        """Returns AnonymousUser if the token is invalid or expired."""
        try:
            validated_token = AccessToken(token)
        except (InvalidToken, TokenError):
            logger.info('WebSocket token rejected')
            return AnonymousUser()

        user_id = validated_token.get('user_id')
        if user_id is None:
            return AnonymousUser()

        User = get_user_model()
        try:
            return User.objects.get(id=user_id)
        except User.DoesNotExist:
            return AnonymousUser()
