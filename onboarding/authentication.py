"""
Authentication helpers.

JWT bearer tokens are handled by ``rest_framework_simplejwt``; the
``TokenAuthentication`` subclass keeps DRF's opaque ``Token`` keyword
available for scripts and integrations that were issued long-lived
tokens.  This module lives apart from the views so that DRF can import
it during settings initialisation without circular imports.
"""
from __future__ import annotations

from rest_framework import authentication
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError


class TokenAuthentication(authentication.TokenAuthentication):
    """Opaque token authentication using the ``Token`` keyword."""

    keyword = 'Token'


def authenticate_bearer(raw_token: str | None):
    """Resolve a raw JWT access token to its user.

    Used outside the DRF request cycle (websocket handshakes).  Raises
    ``NotAuthenticated`` for a missing token and ``AuthenticationFailed``
    for an invalid or expired one.
    """
    if not raw_token:
        raise NotAuthenticated('Authentication credentials were not provided.')
    backend = JWTAuthentication()
    try:
        validated = backend.get_validated_token(raw_token.encode() if isinstance(raw_token, str) else raw_token)
        return backend.get_user(validated)
    except (InvalidToken, TokenError) as exc:
        raise AuthenticationFailed(str(exc)) from exc
