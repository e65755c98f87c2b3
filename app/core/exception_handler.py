"""
DRF exception handler that renders application errors.

Application errors (core.exceptions.BaseApplicationError and subclasses)
carry their own HTTP status. DRF authentication failures are rendered in the
same {"error": ...} shape. DRF errors keep DRF's default handling, and any
other exception becomes a JSON 500.

Configured in settings:
    REST_FRAMEWORK = {"EXCEPTION_HANDLER": "core.exception_handler.api_exception_handler"}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import AuthenticationError, BaseApplicationError, InternalError

if TYPE_CHECKING:
    from typing import Any


logger = logging.getLogger(__name__)


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """
    Convert BaseApplicationError into a JSON response with its status code.

    Server-side failures (5xx) are logged with the traceback; client errors
    are logged at info level without one.
    """
    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        response = exception_handler(exc, context)
        error = AuthenticationError("Unauthorized")
        response.data = {"error": error.message, "error_code": error.error_code}
        response.status_code = error.status_code
        return response

    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        log_context = {
            "error_code": exc.error_code,
            "view": view.__class__.__name__ if view else None,
        }
        if exc.status_code >= 500:
            logger.error(f"Request failed: {exc!r}", extra=log_context, exc_info=exc)
        else:
            logger.info(f"Request rejected: {exc.error_code}", extra=log_context)
        return Response(exc.to_dict(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        return response

    # Anything DRF does not know still answers JSON, never the HTML error page
    logger.error(f"Unhandled API error: {exc!r}", exc_info=exc)
    error = InternalError("Internal Server Error")
    return Response(error.to_dict(), status=error.status_code)
