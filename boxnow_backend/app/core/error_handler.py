"""
Error handling and sanitization

- Domain errors (BoxNowBaseError) -> {"error", "message", "details"} with their own status
- Carrier non-2xx -> original status and body relayed verbatim
- Payment provider errors -> provider status and JSON body relayed when one came back
- Unhandled exceptions -> logged with traceback, generic 500 returned
"""
import logging
import traceback
import uuid
from typing import Any, Dict, Union

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.exceptions import BoxNowBaseError, CarrierAPIError, ConfigurationError, PaymentError

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "credential",
    "client_id",
    "smtp",
    "traceback",
    "file \"",
    "line ",
    "/app/",
    "\\app\\",
]


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    Args:
        error: The error string or exception

    Returns:
        Sanitized error message safe for client
    """
    message = error if isinstance(error, str) else str(error)

    # In debug mode, return full message
    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    # Truncate very long messages
    if len(message) > 200:
        return message[:200] + "..."

    return message


def carrier_error_response(exc: CarrierAPIError) -> Response:
    """Relay a BoxNow error response exactly as received."""
    return Response(content=exc.body, status_code=exc.status_code, media_type=exc.content_type)


async def boxnow_error_handler(request: Request, exc: BoxNowBaseError) -> Response:
    if isinstance(exc, CarrierAPIError):
        logger.warning(f"{request.method} {request.url.path} -> carrier {exc.status_code}: {exc.text[:500]}")
        return carrier_error_response(exc)

    if isinstance(exc, PaymentError) and exc.body:
        logger.warning(f"{request.method} {request.url.path} -> payment provider {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.body)

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code}: {exc.message}")

    content = exc.to_dict()
    # Configuration errors keep their descriptive message
    if exc.status_code >= 500 and not isinstance(exc, ConfigurationError):
        content["message"] = sanitize_error_message(exc.message)

    return JSONResponse(status_code=exc.status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BoxNowBaseError, boxnow_error_handler)


def internal_error_body(exc: Exception, error_id: str) -> Dict[str, Any]:
    """Unhandled failures rendered in the same shape as BoxNowBaseError.to_dict()."""
    if settings.DEBUG:
        return {
            "error": "INTERNAL_ERROR",
            "message": str(exc),
            "details": {"errorId": error_id, "type": type(exc).__name__},
        }
    return {
        "error": "INTERNAL_ERROR",
        "message": "An unexpected error occurred. Please try again later.",
        "details": {"errorId": error_id},
    }


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Last-resort boundary for exceptions no handler claimed.

    The full traceback is logged under an error id; the client only gets
    the id (plus the exception text when DEBUG is on).
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            error_id = uuid.uuid4().hex[:12]
            logger.error(
                f"Unhandled exception [{error_id}] {request.method} {request.url.path}: "
                f"{type(e).__name__}: {e}\n{traceback.format_exc()}"
            )
            return JSONResponse(status_code=500, content=internal_error_body(e, error_id))
