"""
WebSocket authentication middleware.

Browsers cannot set headers on a WebSocket handshake, so the bearer token
travels in the query string: ``ws/messages/?token=<jwt>``.
"""

import logging
from urllib.parse import parse_qs

import jwt
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from apps.core.middleware.auth import decode_token

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket connections
    """

    async def __call__(self, scope, receive, send):
        query_string = scope.get('query_string', b'').decode()
        query_params = parse_qs(query_string)

        token = query_params.get('token', [None])[0]
        scope = dict(scope)

        if token:
            try:
                scope['user'] = {**decode_token(token), 'is_authenticated': True}
            except jwt.ExpiredSignatureError:
                logger.info('[websocket] Rejected expired token')
                scope['user'] = AnonymousUser()
            except jwt.InvalidTokenError:
                logger.info('[websocket] Rejected invalid token')
                scope['user'] = AnonymousUser()
        else:
            scope['user'] = AnonymousUser()

        return await super().__call__(scope, receive, send)
