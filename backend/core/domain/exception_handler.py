"""
core.domain.exception_handler — DRF-compatible global exception handler.

Maps domain exceptions from ``core.domain.exceptions`` to DRF ``Response``
objects so that views stay free of per-endpoint try/except blocks.

Registered in ``backend/settings.py``::

    REST_FRAMEWORK = {
        ...
        "EXCEPTION_HANDLER": "core.domain.exception_handler.domain_exception_handler",
    }
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_handler

from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)

logger = logging.getLogger(__name__)

# Most specific first; DomainError is the catch-all base class.
_STATUS_MAP: dict[type, int] = {
    PermissionDenied:  status.HTTP_403_FORBIDDEN,
    NotFound:          status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    Conflict:          status.HTTP_409_CONFLICT,
    DomainError:       status.HTTP_400_BAD_REQUEST,
}


def domain_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    DRF exception handler that also understands ``core.domain.exceptions``.

    The default DRF handler runs first.  If it returns ``None`` (DRF does
    not recognise the exception) and the exception is a ``DomainError``,
    the mapped status code is returned with ``{"detail": message}``.
    Anything else propagates and becomes a 500.
    """
    response = drf_default_handler(exc, context)
    if response is not None:
        return response

    for exc_class, status_code in _STATUS_MAP.items():
        if isinstance(exc, exc_class):
            logger.warning(
                "Domain exception [%s] in %s: %s",
                exc_class.__name__,
                type(context.get("view")).__name__,
                exc,
            )
            return Response({"detail": str(exc)}, status=status_code)

    return None
