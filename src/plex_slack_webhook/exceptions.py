"""Define custom exceptions."""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class PlexSlackWebhookError(Exception):
    """Base class for errors raised by this service."""


class InvalidPayload(PlexSlackWebhookError):
    """Webhook payload is missing metadata, has an unsupported media type, or an unaccepted event."""


class ImageDecodeError(PlexSlackWebhookError):
    """Raw image bytes could not be decoded as a raster image."""


class UpstreamFetchError(PlexSlackWebhookError):
    """A remote thumbnail fetch or geolocation lookup failed."""


class CacheUnavailable(PlexSlackWebhookError):
    """The image cache store could not be read or written."""


class NotificationDeliveryError(PlexSlackWebhookError):
    """The notification sink rejected the message or was unreachable."""


async def invalid_payload_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:  # noqa: ARG001
    """Reject bad webhooks with a 400."""
    return PlainTextResponse(str(exc) or "Bad Request", status_code=400)


async def request_validation_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:  # noqa: ARG001
    """Missing or malformed form fields are a bad webhook too."""
    return PlainTextResponse("Invalid webhook request", status_code=400)


async def http_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:  # noqa: ARG001
    """Render HTTP errors, including unmatched routes, as plain text."""
    status_code = getattr(exc, "status_code", 500)
    detail = getattr(exc, "detail", None) or "Internal Server Error"
    return PlainTextResponse(str(detail), status_code=status_code, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Render anything else as a plain text 500."""
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return PlainTextResponse(str(exc) or "Internal Server Error", status_code=500)


EXCEPTION_HANDLERS = {
    InvalidPayload: invalid_payload_exception_handler,
    RequestValidationError: request_validation_exception_handler,
    StarletteHTTPException: http_exception_handler,
    Exception: unhandled_exception_handler,
}
