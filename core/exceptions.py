"""
Shop error taxonomy and the DRF exception handler that renders it.

Services raise these; views let them propagate and the handler turns them
into ``{"error": ..., "code": ...}`` responses with the matching status.
"""

import logging
from typing import Optional

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ShopError(Exception):
    """Base exception for domain errors surfaced to API callers"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'ERROR'

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}


class NotFoundError(ShopError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = 'NOT_FOUND'


class ForbiddenError(ShopError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = 'ACCESS_DENIED'


class ConflictError(ShopError):
    status_code = status.HTTP_409_CONFLICT
    default_code = 'CONFLICT'


class InvalidRequestError(ShopError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'INVALID_REQUEST'


class GatewayError(ShopError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_code = 'GATEWAY_ERROR'


class MalformedCallbackError(ShopError):
    """Callback payload is missing its envelope. Never leaves the callback handler."""
    default_code = 'MALFORMED_CALLBACK'


def api_exception_handler(exc, context) -> Optional[Response]:
    """
    Render ShopError subclasses as JSON and defer everything else to DRF.
    """
    if isinstance(exc, ShopError):
        view = context.get('view')
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'view'}: {exc.message}",
            extra={'code': exc.code, 'details': exc.details}
        )
        return Response({'error': exc.message, 'code': exc.code}, status=exc.status_code)

    return exception_handler(exc, context)
