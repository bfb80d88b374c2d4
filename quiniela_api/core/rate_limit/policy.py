"""Limiter policies: a fixed-window counter bound to a class of endpoints.

A policy owns an immutable :class:`LimiterConfig` and evaluates requests
against an injected counter store and clock. Rejections surface as
:class:`~quiniela_api.core.errors.RateLimitExceeded`; admissions return a
:class:`RateLimitDecision` whose headers the caller attaches to the response.

Only the standardized ``RateLimit-*`` header convention is emitted; the legacy
``X-RateLimit-*`` headers are never sent.
"""

from __future__ import annotations

import hashlib
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from quiniela_api.adapters.rate_limit.base import AbstractRateLimitStore, CounterResult
from quiniela_api.core.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
KeyFunc = Callable[[Request], str]
BypassPredicate = Callable[[Request], bool]


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


def hash_client_key(key: str) -> str:
    """Hash a client key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _ceil_seconds(milliseconds: float) -> int:
    return max(0, int(math.ceil(milliseconds / 1000)))


@dataclass(frozen=True)
class LimiterConfig:
    """Immutable configuration of one limiter policy.

    Attributes:
        name: Policy name; also the counter namespace.
        window_ms: Fixed window length in milliseconds.
        max_requests: Requests admitted per client per window.
        error_code: Machine-readable code sent on rejection.
        message: Localized, human-readable rejection message.
        standard_headers: Whether to expose ``RateLimit-*`` headers.
        bypass: Optional predicate; when true the request skips the limiter.
    """

    name: str
    window_ms: int
    max_requests: int
    error_code: str
    message: str
    standard_headers: bool = True
    bypass: BypassPredicate | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("policy name must be a non-empty string")
        if self.window_ms <= 0:
            raise ValueError(f"{self.name}: window_ms must be > 0")
        if self.max_requests < 1:
            raise ValueError(f"{self.name}: max_requests must be >= 1")
        if not self.error_code:
            raise ValueError(f"{self.name}: error_code must be a non-empty string")

    @property
    def rejection_payload(self) -> dict[str, str]:
        return {"error": self.error_code, "message": self.message}


@dataclass(frozen=True)
class RateLimitDecision:
    """Admission decision for one request under one policy."""

    policy: str
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int
    retry_after_ms: float | None = None
    bypassed: bool = False

    @property
    def retry_after_seconds(self) -> int | None:
        if self.retry_after_ms is None:
            return None
        return max(1, _ceil_seconds(self.retry_after_ms))

    def headers(self) -> dict[str, str]:
        """Build standardized rate limit headers for this decision."""

        if self.bypassed:
            return {}

        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_seconds),
        }
        if not self.allowed and self.retry_after_seconds is not None:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


class LimiterPolicy:
    """Evaluate requests against one :class:`LimiterConfig`."""

    def __init__(
        self,
        config: LimiterConfig,
        store: AbstractRateLimitStore,
        *,
        key_func: KeyFunc,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.config = config
        self._store = store
        self._key_func = key_func
        self._clock = clock

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"LimiterPolicy(name={self.config.name!r}, window_ms={self.config.window_ms}, "
            f"max_requests={self.config.max_requests})"
        )

    @property
    def name(self) -> str:
        return self.config.name

    def evaluate(self, request: Request) -> RateLimitDecision:
        """Admit or reject ``request``.

        Args:
            request: Incoming request.

        Returns:
            RateLimitDecision for an admitted (or bypassed) request.

        Raises:
            RateLimitExceeded: When the client's quota for the window is spent.
        """

        config = self.config
        if config.bypass is not None and config.bypass(request):
            logger.debug(
                "rate_limit.bypassed",
                extra={"policy": config.name, "path": request.url.path},
            )
            return RateLimitDecision(
                policy=config.name,
                allowed=True,
                limit=config.max_requests,
                remaining=config.max_requests,
                reset_seconds=0,
                bypassed=True,
            )

        key = self._key_func(request)
        result = self._store.hit(
            config.name,
            key,
            limit=config.max_requests,
            window_ms=config.window_ms,
            now=self._clock(),
        )
        decision = self._decision_from(result)

        log_extra = {
            "policy": config.name,
            "key_hash": hash_client_key(key),
            "limit": result.limit,
            "remaining": result.remaining,
            "window_ms": config.window_ms,
        }

        if decision.allowed:
            logger.info("rate_limit.allowed", extra=log_extra)
            return decision

        logger.warning(
            "rate_limit.exceeded",
            extra={**log_extra, "retry_after_ms": result.retry_after_ms},
        )
        raise RateLimitExceeded(
            code=config.error_code,
            message=config.message,
            details={
                "policy": config.name,
                "limit": result.limit,
                "retry_after": decision.retry_after_seconds or 0,
            },
            policy=config.name,
            retry_after_seconds=decision.retry_after_seconds or 0,
            retry_after_ms=result.retry_after_ms or 0.0,
            headers=decision.headers() if config.standard_headers else {},
        )

    def _decision_from(self, result: CounterResult) -> RateLimitDecision:
        return RateLimitDecision(
            policy=self.config.name,
            allowed=result.allowed,
            limit=result.limit,
            remaining=result.remaining,
            reset_seconds=_ceil_seconds(result.reset_after_ms),
            retry_after_ms=result.retry_after_ms,
        )
