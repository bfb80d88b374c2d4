"""Application factory for the Quiniela API.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances with their own limiter
registry.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from fastapi import APIRouter, Depends, FastAPI

from quiniela_api.api.routes import health_router
from quiniela_api.core.config import settings
from quiniela_api.core.exception_handlers import setup_exception_handlers
from quiniela_api.core.logging import configure_logging
from quiniela_api.core.middleware import rate_limit_headers_middleware, request_id_middleware
from quiniela_api.core.openapi import apply_openapi_customizations
from quiniela_api.core.rate_limit import (
    RateLimitRegistry,
    build_registry,
    get_registry,
    rate_limit,
    set_registry,
)
from quiniela_api.core.rate_limit.registry import API

logger = logging.getLogger(__name__)


def create_app(
    *,
    registry: RateLimitRegistry | None = None,
    routers: Iterable[APIRouter] = (),
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        registry: Limiter registry to use; built from settings on startup
            (or on first request) when omitted. An injected registry is
            closed on shutdown, so the app cannot be started again.
        routers: Extra routers to mount (business route groups).

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if registry is not None:
            if registry.closed:
                raise RuntimeError(
                    "the injected rate limit registry was closed by a previous "
                    "shutdown; create a new app with a fresh registry"
                )
            set_registry(app, registry)
        active = get_registry(app)
        if active.closed:
            active = build_registry(settings.rate_limit, health_path=settings.app.health_path)
            set_registry(app, active)
        logger.info("app.startup", extra={"rate_limit_policies": active.names()})
        try:
            yield
        finally:
            # Kept attached so late requests fail loudly instead of rebuilding.
            active.close()
            logger.info("app.shutdown")

    app = FastAPI(
        title="Quiniela API",
        description=(
            "API de quinielas deportivas. Todas las rutas pasan por el limitador "
            "general (100 solicitudes por minuto por IP); los grupos de rutas de "
            "autenticación, recuperación de contraseña y creación de recursos "
            "tienen límites propios."
        ),
        version="0.1.0",
        lifespan=lifespan,
        dependencies=[Depends(rate_limit(API))],
    )
    if registry is not None:
        set_registry(app, registry)

    # Middleware
    app.middleware("http")(rate_limit_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    for router in routers:
        app.include_router(router)

    apply_openapi_customizations(app)

    return app
