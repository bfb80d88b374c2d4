"""Rate limit store interfaces.

Policies depend on this abstraction (not the concrete implementation) so
the counting backend can be swapped with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CounterResult:
    """Outcome of a single fixed-window hit.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        count: Requests counted in the current window, this one included.
        remaining: Requests still allowed in the current window (0 when blocked).
        reset_after_ms: Milliseconds until the current window ends.
        retry_after_ms: Milliseconds the caller should wait when blocked.
    """

    allowed: bool
    limit: int
    count: int
    remaining: int
    reset_after_ms: float
    retry_after_ms: float | None


class AbstractRateLimitStore(ABC):
    """Interface for fixed-window counter stores."""

    @abstractmethod
    def hit(
        self,
        namespace: str,
        key: str,
        *,
        limit: int,
        window_ms: float,
        now: float,
    ) -> CounterResult:
        """Count one request for ``key`` and decide admission.

        Args:
            namespace: Policy name; counters never cross namespaces.
            key: Client key (e.g., network origin address).
            limit: Maximum requests admitted per window.
            window_ms: Window length in milliseconds.
            now: Current time in milliseconds.

        Returns:
            CounterResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, namespace: str | None = None, key: str | None = None) -> None:
        """Drop counters for a key, a namespace, or everything."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Evict inactive windows and return how many were dropped."""
        raise NotImplementedError

    def close(self) -> None:
        """Release resources held by the store."""
