"""Route-group scoping for limiter policies.

Business routers declare which policies guard them when they are created;
the general ``api`` policy is applied application-wide by the app factory.

    auth_router = limited_router("auth", prefix="/auth")
    reset_router = limited_router("password_reset", prefix="/auth")
    pools_router = limited_router("create_resource", prefix="/pools")
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from quiniela_api.core.rate_limit import rate_limit


def limited_router(*policies: str, **router_kwargs: Any) -> APIRouter:
    """Create an ``APIRouter`` whose routes are all subject to ``policies``.

    Args:
        *policies: Policy names, evaluated in order for every request.
        **router_kwargs: Forwarded to ``APIRouter`` (prefix, tags, ...).

    Returns:
        APIRouter with one rate limit dependency per policy.
    """

    if not policies:
        raise ValueError("limited_router needs at least one policy name")

    dependencies = list(router_kwargs.pop("dependencies", None) or [])
    dependencies.extend(Depends(rate_limit(name)) for name in policies)
    return APIRouter(dependencies=dependencies, **router_kwargs)
