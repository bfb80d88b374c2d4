"""Application-level exception types.

The admission layer raises a single error kind, ``RateLimitExceeded``.
Configuration mistakes are rejected at startup (``ValueError`` and pydantic
``ValidationError``) and never reach the HTTP layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    policy: str
    limit: int
    retry_after: float
    http_status: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


@dataclass
class RateLimitExceeded(AppError):
    """Raised when a request is rejected by a limiter policy.

    Terminal for the current request attempt: it is never retried
    internally and maps to HTTP 429.

    Attributes:
        policy: Name of the policy that rejected the request.
        retry_after_seconds: Seconds until the client's window resets.
        retry_after_ms: The same delay in milliseconds, unrounded.
        headers: Rate limit headers to send along with the rejection.
    """

    policy: str = ""
    retry_after_seconds: int = 0
    retry_after_ms: float = 0.0
    headers: dict[str, str] = field(default_factory=dict)
