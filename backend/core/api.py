import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.exceptions import BookingError

logger = logging.getLogger(__name__)


def booking_exception_handler(exc, context):
    """Render booking-core errors as ``{"detail", "code"}`` and defer the rest to DRF."""
    if isinstance(exc, BookingError):
        view = context.get("view")
        logger.warning(
            "%s rejected by %s: %s",
            exc.code,
            view.__class__.__name__ if view is not None else "unknown view",
            exc,
        )
        payload = {"detail": str(exc), "code": exc.code}
        if exc.retryable:
            payload["retryable"] = True
        return Response(payload, status=exc.status_code)
    return drf_exception_handler(exc, context)
