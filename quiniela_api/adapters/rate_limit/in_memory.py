"""In-memory fixed-window rate limit store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the whole hit (reset, increment, compare) runs under one lock.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass

from quiniela_api.adapters.rate_limit.base import AbstractRateLimitStore, CounterResult

logger = logging.getLogger(__name__)


@dataclass
class WindowState:
    window_start: float
    window_ms: float
    count: int = 0


class InMemoryFixedWindowStore(AbstractRateLimitStore):
    """Counter store keeping one fixed window per (namespace, key).

    A window starts with the first request seen for a key and lasts
    ``window_ms``. Every request is counted, including rejected ones, so a
    client that keeps hammering stays blocked until the window ends.

    Inactive windows are dropped once they are older than
    ``eviction_windows`` window lengths. A sweep runs automatically every
    ``sweep_every_hits`` hits and the table never grows beyond ``max_keys``
    entries (oldest windows are evicted first).
    """

    def __init__(
        self,
        *,
        eviction_windows: int = 2,
        sweep_every_hits: int = 1000,
        max_keys: int | None = 100_000,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            eviction_windows: Windows of inactivity before a key is evicted.
            sweep_every_hits: Hits between automatic sweeps.
            max_keys: Hard cap on tracked keys (None for unlimited).

        Raises:
            ValueError: If any of the bounds is invalid.
        """
        if eviction_windows < 1:
            raise ValueError("eviction_windows must be >= 1")
        if sweep_every_hits < 1:
            raise ValueError("sweep_every_hits must be >= 1")
        if max_keys is not None and max_keys < 1:
            raise ValueError("max_keys must be >= 1")

        self._eviction_windows = eviction_windows
        self._sweep_every_hits = sweep_every_hits
        self._max_keys = max_keys
        self._lock = threading.Lock()
        self._states: OrderedDict[tuple[str, str], WindowState] = OrderedDict()
        self._hits = 0
        self._evictions = 0
        self._closed = False

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryFixedWindowStore(keys={len(self._states)}, hits={self._hits}, "
            f"evictions={self._evictions}, closed={self._closed})"
        )

    def hit(
        self,
        namespace: str,
        key: str,
        *,
        limit: int,
        window_ms: float,
        now: float,
    ) -> CounterResult:
        """Count one request and decide admission.

        Raises:
            ValueError: If namespace/key are empty or the limits are invalid.
            RuntimeError: If the store was closed.
        """
        if not namespace:
            raise ValueError("namespace must be a non-empty string")
        if not key:
            raise ValueError("key must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0")

        with self._lock:
            if self._closed:
                raise RuntimeError("rate limit store is closed")

            self._hits += 1
            if self._hits % self._sweep_every_hits == 0:
                self._sweep_locked(now)

            state = self._get_or_reset_locked((namespace, key), window_ms, now)
            state.count += 1

            # A clock that went backwards keeps the current window open.
            elapsed = max(0.0, now - state.window_start)
            reset_after_ms = max(0.0, window_ms - elapsed)

            if state.count > limit:
                return CounterResult(
                    allowed=False,
                    limit=limit,
                    count=state.count,
                    remaining=0,
                    reset_after_ms=reset_after_ms,
                    retry_after_ms=reset_after_ms,
                )

            return CounterResult(
                allowed=True,
                limit=limit,
                count=state.count,
                remaining=limit - state.count,
                reset_after_ms=reset_after_ms,
                retry_after_ms=None,
            )

    def reset(self, namespace: str | None = None, key: str | None = None) -> None:
        """Drop counters matching the given namespace and/or key."""

        with self._lock:
            if namespace is None and key is None:
                self._states.clear()
                return
            for state_key in list(self._states):
                ns, client_key = state_key
                if namespace is not None and ns != namespace:
                    continue
                if key is not None and client_key != key:
                    continue
                del self._states[state_key]

    def sweep(self, now: float) -> int:
        """Evict windows that have been inactive for too long."""

        with self._lock:
            return self._sweep_locked(now)

    def close(self) -> None:
        """Clear all counters and refuse further hits."""

        with self._lock:
            self._states.clear()
            self._closed = True

    def peek(self, namespace: str, key: str) -> WindowState | None:
        """Return a copy of the stored window, if any (diagnostics/tests)."""

        with self._lock:
            state = self._states.get((namespace, key))
            if state is None:
                return None
            return WindowState(
                window_start=state.window_start,
                window_ms=state.window_ms,
                count=state.count,
            )

    def stats(self) -> dict[str, int | bool | None]:
        """Return lightweight store metrics without exposing keys."""

        with self._lock:
            return {
                "keys": len(self._states),
                "max_keys": self._max_keys,
                "hits": self._hits,
                "evictions": self._evictions,
                "closed": self._closed,
            }

    def _get_or_reset_locked(
        self, state_key: tuple[str, str], window_ms: float, now: float
    ) -> WindowState:
        state = self._states.get(state_key)
        if state is not None and now - state.window_start < state.window_ms:
            return state

        state = WindowState(window_start=now, window_ms=window_ms)
        self._states[state_key] = state
        # Keep the table ordered by window start so overflow drops the oldest.
        self._states.move_to_end(state_key)
        self._evict_if_over_capacity_locked()
        return state

    def _sweep_locked(self, now: float) -> int:
        stale = [
            state_key
            for state_key, state in self._states.items()
            if now - state.window_start >= state.window_ms * self._eviction_windows
        ]
        for state_key in stale:
            del self._states[state_key]
        self._evictions += len(stale)

        if stale:
            logger.debug(
                "rate_limit.sweep",
                extra={"evicted": len(stale), "keys": len(self._states)},
            )
        return len(stale)

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_keys is None:
            return
        while len(self._states) > self._max_keys:
            self._states.popitem(last=False)
            self._evictions += 1
