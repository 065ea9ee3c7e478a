"""WebSocket authentication middleware for JWT auth."""

import logging
from urllib.parse import parse_qs

from asgiref.sync import sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

User = get_user_model()
logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """
    Authenticate WebSocket connections with a JWT access token passed in the
    querystring (?token=...). Falls back to whatever user an outer
    AuthMiddlewareStack already put in the scope.
    """

    async def __call__(self, scope, receive, send):
        query_string = scope.get("query_string", b"").decode()
        params = parse_qs(query_string)

        token_list = params.get("token")
        if token_list:
            scope["user"] = await self._user_from_token(token_list[0])
        elif "user" not in scope:
            scope["user"] = AnonymousUser()

        return await super().__call__(scope, receive, send)

    async def _user_from_token(self, token):
        try:
            access = AccessToken(token)
            user_id = access["user_id"]
        except (TokenError, KeyError) as e:
            logger.debug("JWT auth failed: %s", e)
            return AnonymousUser()

        try:
            return await sync_to_async(User.objects.get)(id=user_id)
        except User.DoesNotExist:
            return AnonymousUser()
