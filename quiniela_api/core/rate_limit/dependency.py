"""Rate limiting dependency for FastAPI routes.

This module wires the limiter registry into the HTTP layer. Route groups opt
into a policy by name:

    router = APIRouter(dependencies=[Depends(rate_limit("auth"))])

The registry lives on ``app.state`` and is created by the application
lifespan; when the lifespan did not run (e.g., a bare ``TestClient``) it is
created lazily on first use.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import FastAPI, Request

from quiniela_api.core.config import settings
from quiniela_api.core.rate_limit.registry import RateLimitRegistry, build_registry

logger = logging.getLogger(__name__)

_STATE_ATTR = "rate_limit_registry"
HEADERS_STATE_ATTR = "rate_limit_headers"


def get_registry(app: FastAPI) -> RateLimitRegistry:
    """Return the application's limiter registry, building it on first use.

    Args:
        app: FastAPI application owning the registry.

    Returns:
        RateLimitRegistry: Process-wide registry for this app.
    """

    registry: RateLimitRegistry | None = getattr(app.state, _STATE_ATTR, None)
    if registry is None:
        registry = build_registry(settings.rate_limit, health_path=settings.app.health_path)
        set_registry(app, registry)
        logger.debug("rate_limit.registry_lazy_init")
    return registry


def set_registry(app: FastAPI, registry: RateLimitRegistry | None) -> None:
    """Attach (or detach, with ``None``) a registry to ``app``."""

    setattr(app.state, _STATE_ATTR, registry)


def rate_limit(name: str) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the policy ``name``.

    On admission the standardized rate limit headers are recorded on
    ``request.state`` and merged into the final response by
    ``rate_limit_headers_middleware``, whatever the endpoint returns. On
    rejection ``RateLimitExceeded`` propagates to the exception handler,
    which answers 429.

    Args:
        name: Registered policy name (e.g., "api", "auth").

    Returns:
        Async dependency callable.
    """

    if not name:
        raise ValueError("policy name must be a non-empty string")

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.rate_limit.enabled:
            return

        policy = get_registry(request.app).get(name)
        decision = policy.evaluate(request)

        if policy.config.standard_headers:
            # The most specific policy (evaluated last) wins.
            pending = dict(getattr(request.state, HEADERS_STATE_ATTR, None) or {})
            pending.update(decision.headers())
            setattr(request.state, HEADERS_STATE_ATTR, pending)

    enforce_rate_limit.__name__ = f"enforce_{name}_rate_limit"
    return enforce_rate_limit
