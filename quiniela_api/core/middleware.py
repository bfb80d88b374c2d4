"""HTTP middleware for request correlation, access logging and rate limit headers.

Every response carries the request id (client supplied or generated) and the
time spent handling it. Rejected requests (429) are logged like any other, so
throttled clients remain traceable by request id. Admitted requests get the
``RateLimit-*`` headers their limiter dependencies recorded.

Usage:
    app.middleware("http")(rate_limit_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response, status

from quiniela_api.core.config import settings
from quiniela_api.core.logging import clear_request_id, set_request_id
from quiniela_api.core.rate_limit.dependency import HEADERS_STATE_ATTR

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate ``X-Request-ID`` and log the request outcome.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with ``X-Request-ID`` and
            ``X-Request-Duration-ms`` headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def rate_limit_headers_middleware(request: Request, call_next) -> Response:
    """Copy admission headers recorded by the rate limit dependencies.

    Endpoints may return their own ``Response`` (e.g., a 201
    ``JSONResponse``), so the headers are merged here instead of through
    FastAPI's injected sub-response. Rejections (429) already carry the
    headers of the policy that rejected them and are left untouched; headers
    set by the endpoint itself are never overwritten.
    """

    response: Response = await call_next(request)
    if response.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        return response

    pending = getattr(request.state, HEADERS_STATE_ATTR, None) or {}
    for header, value in pending.items():
        response.headers.setdefault(header, value)
    return response
