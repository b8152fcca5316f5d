"""Global exception handlers for consistent error responses.

Design:
- InvalidKeyError → 400 (caller sent an unusable identity)
- StoreOperationError / WindowVanishedError → 503 (shared store failed or
  its window state was changed underneath us)
- ConfigurationError → 500 (the service itself is misconfigured)
- other AppError → 400
- unexpected Exception → generic 500

The 429 rejection is not handled here: it is a successful decision raised
as an HTTPException by the rate limit dependency.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from window_limiter.core.errors import (
    AppError,
    ConfigurationError,
    InvalidKeyError,
    StoreOperationError,
    WindowVanishedError,
)
from window_limiter.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    """Map a limiter error to its HTTP status code."""
    if isinstance(exc, (StoreOperationError, WindowVanishedError)):
        return 503
    if isinstance(exc, ConfigurationError):
        return 500
    if isinstance(exc, InvalidKeyError):
        return 400
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as ``{"error": {code, message, request_id, details?}}``."""
    status_code = status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = dict(exc.details)

    return JSONResponse(status_code=status_code, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler: log the failure, return a generic 500 without internals."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app`` (specific before general)."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
