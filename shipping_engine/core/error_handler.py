"""
Error handling for the HTTP surface

- Engine errors map to a fixed status code and a structured body
- Database/driver errors -> generic message
- Stack traces -> logged only, never returned to the client
"""
import logging
import traceback
from typing import Union

from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shipping_engine.core.config import settings
from shipping_engine.core.exceptions import (
    ShippingEngineError,
    NotFoundError,
    RestrictionViolationError,
    InvalidTransitionError,
    ConfigurationError,
    TransientStoreError,
)

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "postgresql",
    "redis://",
    "traceback",
    "file \"",
]

# Most specific class first
ENGINE_ERROR_STATUS = [
    (NotFoundError, 404),
    (RestrictionViolationError, 422),
    (InvalidTransitionError, 409),
    (ConfigurationError, 400),
    (TransientStoreError, 503),
]


def is_sensitive_error(message: str) -> bool:
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """
    Sanitize an error message for safe client exposure.

    In DEBUG the message is returned unchanged.
    """
    message = error if isinstance(error, str) else str(error)

    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return "An internal error occurred. Please try again later."

    if len(message) > 200:
        return message[:200] + "..."

    return message


def status_code_for(error: ShippingEngineError) -> int:
    for error_class, status_code in ENGINE_ERROR_STATUS:
        if isinstance(error, error_class):
            return status_code
    return 500


def http_exception_for(error: ShippingEngineError) -> HTTPException:
    """
    Translate an engine error into an HTTPException.

    The detail carries code, message and details so clients can branch
    on the code (e.g. SHIPMENT_CONFLICT vs INVALID_TRANSITION).
    """
    status_code = status_code_for(error)
    if status_code >= 500:
        logger.error(f"[SHIPPING] {error.code}: {error.message} {error.details}")
    return HTTPException(
        status_code=status_code,
        detail={
            "code": error.code,
            "message": sanitize_error_message(error.message),
            "details": error.details,
        },
    )


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and return a sanitized 500.

    Full details are always logged with an error id the client can quote.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {e}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            content = {
                "error": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
                "error_id": error_id,
            }
            if settings.DEBUG:
                content["message"] = str(e)
                content["type"] = type(e).__name__
            return JSONResponse(status_code=500, content=content)
