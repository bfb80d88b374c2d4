"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceeded → 429 with the flat ``{"error", "message"}`` body clients
  already parse, plus rate limit headers
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from quiniela_api.core.errors import RateLimitExceeded
from quiniela_api.core.logging import get_request_id

logger = logging.getLogger(__name__)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer a rejected request with HTTP 429.

    Args:
        request: FastAPI request object.
        exc: Rejection raised by a limiter policy.

    Returns:
        JSONResponse carrying the policy's rejection payload and headers.
    """
    logger.info(
        "rate_limit_rejected",
        extra={
            "policy": exc.policy,
            "error_code": exc.code,
            "retry_after_s": exc.retry_after_seconds,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": exc.code, "message": exc.message},
        headers=exc.headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message,
    so no stack traces or internals reach the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    RateLimitExceeded is the only domain error; anything else falls through
    to the generic 500 handler.
    """
    app.exception_handler(RateLimitExceeded)(rate_limit_exceeded_handler)
    app.exception_handler(Exception)(general_exception_handler)
