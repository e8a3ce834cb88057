"""
API error types and the unified exception handler.

Services raise DRF exceptions directly (``ValidationError``,
``NotFound``, ``PermissionDenied``); the domain-specific ones below cover
the remaining cases. Every error leaves the API as
``{"ok": false, "error": {"code": ..., "message": ...}}``.
"""
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Conflict(APIException):
    """Uniqueness violated, e.g. a second live application per e-mail."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'conflict'


class PreconditionError(APIException):
    """An operation was attempted before its prerequisites were met."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Precondition not satisfied.'
    default_code = 'precondition_failed'


class InvalidStateError(PreconditionError):
    """A transition is not allowed from the entity's current status."""
    default_detail = 'Operation not allowed in the current state.'
    default_code = 'invalid_state'


class StorageError(APIException):
    """The document store failed to save or delete content."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Document storage is unavailable.'
    default_code = 'storage_error'


def _error_code(exc, resp) -> str:
    codes = getattr(exc, 'get_codes', None)
    if callable(codes):
        c = codes()
        if isinstance(c, str):
            return c
        if resp.status_code == 400:
            return 'invalid'
    return 'api_error'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view').__class__.__name__ if context else '?')
        message = str(exc) if settings.DEBUG else 'Internal server error.'
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': message}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    headers = {h: resp[h] for h in ('WWW-Authenticate', 'Retry-After') if resp.has_header(h)}
    return Response(
        {'ok': False, 'error': {'code': _error_code(exc, resp), 'message': detail}},
        status=resp.status_code,
        headers=headers,
    )
