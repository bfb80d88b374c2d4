"""Registry of the application's limiter policies.

Each policy keeps its own counters (its name is the store namespace), so a
request evaluated by several policies is counted independently by each.
Which routes a policy guards is decided by the routing layer, not here.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Iterable

from fastapi import Request

from quiniela_api.adapters.rate_limit.base import AbstractRateLimitStore
from quiniela_api.adapters.rate_limit.in_memory import InMemoryFixedWindowStore
from quiniela_api.core.config import RateLimitSettings
from quiniela_api.core.rate_limit.keys import client_key
from quiniela_api.core.rate_limit.policy import (
    Clock,
    KeyFunc,
    LimiterConfig,
    LimiterPolicy,
    monotonic_ms,
)

logger = logging.getLogger(__name__)

API = "api"
AUTH = "auth"
PASSWORD_RESET = "password_reset"
CREATE_RESOURCE = "create_resource"
FEEDBACK = "feedback"


class RateLimitRegistry:
    """Named, independent limiter policies sharing one store object."""

    def __init__(self, policies: Iterable[LimiterPolicy], store: AbstractRateLimitStore) -> None:
        self._policies: dict[str, LimiterPolicy] = {}
        for policy in policies:
            if policy.name in self._policies:
                raise ValueError(f"duplicate rate limit policy: {policy.name}")
            self._policies[policy.name] = policy
        self.store = store
        self.closed = False

    def __contains__(self, name: object) -> bool:
        return name in self._policies

    def get(self, name: str) -> LimiterPolicy:
        """Return the policy registered under ``name``.

        Raises:
            KeyError: If no such policy exists.
        """
        try:
            return self._policies[name]
        except KeyError:
            raise KeyError(f"unknown rate limit policy: {name}") from None

    def names(self) -> list[str]:
        return list(self._policies)

    def reset(self) -> None:
        """Forget every counter (all policies)."""
        self.store.reset()

    def close(self) -> None:
        self.store.close()
        self.closed = True
        logger.info("rate_limit.registry_closed", extra={"policies": self.names()})


def _is_health_check(request: Request, health_path: str) -> bool:
    return request.url.path == health_path


def build_default_configs(
    cfg: RateLimitSettings,
    *,
    health_path: str = "/health",
) -> list[LimiterConfig]:
    """Build the limiter configurations used by the API."""

    headers = cfg.standard_headers
    return [
        LimiterConfig(
            name=API,
            window_ms=cfg.api_window_ms,
            max_requests=cfg.api_max_requests,
            error_code="RATE_LIMIT_EXCEEDED",
            message="Demasiadas solicitudes. Intenta de nuevo en 1 minuto.",
            standard_headers=headers,
            bypass=partial(_is_health_check, health_path=health_path),
        ),
        LimiterConfig(
            name=AUTH,
            window_ms=cfg.auth_window_ms,
            max_requests=cfg.auth_max_requests,
            error_code="TOO_MANY_LOGIN_ATTEMPTS",
            message="Demasiados intentos de inicio de sesión. Intenta de nuevo en 15 minutos.",
            standard_headers=headers,
        ),
        LimiterConfig(
            name=PASSWORD_RESET,
            window_ms=cfg.password_reset_window_ms,
            max_requests=cfg.password_reset_max_requests,
            error_code="TOO_MANY_RESET_REQUESTS",
            message="Demasiadas solicitudes de recuperación. Intenta de nuevo en 1 hora.",
            standard_headers=headers,
        ),
        LimiterConfig(
            name=CREATE_RESOURCE,
            window_ms=cfg.create_resource_window_ms,
            max_requests=cfg.create_resource_max_requests,
            error_code="TOO_MANY_CREATIONS",
            message="Has creado demasiados recursos. Intenta de nuevo más tarde.",
            standard_headers=headers,
        ),
        LimiterConfig(
            name=FEEDBACK,
            window_ms=cfg.feedback_window_ms,
            max_requests=cfg.feedback_max_requests,
            error_code="RATE_LIMITED",
            message="Demasiados envíos. Intenta en un minuto.",
            standard_headers=headers,
        ),
    ]


def build_registry(
    cfg: RateLimitSettings,
    *,
    health_path: str = "/health",
    store: AbstractRateLimitStore | None = None,
    clock: Clock = monotonic_ms,
    key_func: KeyFunc | None = None,
) -> RateLimitRegistry:
    """Create the registry of default policies.

    Args:
        cfg: Rate limit settings (windows, maxima, store bounds).
        health_path: Path the general API policy never counts.
        store: Counter store; an in-memory store is created when omitted.
        clock: Millisecond time source shared by every policy.
        key_func: Client key extraction; defaults to the network origin.

    Returns:
        RateLimitRegistry with one policy per endpoint class.
    """

    if store is None:
        store = InMemoryFixedWindowStore(
            eviction_windows=cfg.eviction_windows,
            sweep_every_hits=cfg.sweep_every_hits,
            max_keys=cfg.max_keys,
        )
    if key_func is None:
        key_func = partial(client_key, trust_forwarded_for=cfg.trust_forwarded_for)

    policies = [
        LimiterPolicy(config, store, key_func=key_func, clock=clock)
        for config in build_default_configs(cfg, health_path=health_path)
    ]

    logger.info(
        "rate_limit.registry_built",
        extra={
            "policies": [p.name for p in policies],
            "store": type(store).__name__,
        },
    )
    return RateLimitRegistry(policies, store)
