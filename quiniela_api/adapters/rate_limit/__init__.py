"""Rate limiting storage adapters.

The policy layer depends only on :class:`AbstractRateLimitStore`, so the
in-memory counters can later be replaced by a shared store (e.g., Redis)
for multi-process deployments without touching the HTTP layer.
"""

from quiniela_api.adapters.rate_limit.base import AbstractRateLimitStore, CounterResult
from quiniela_api.adapters.rate_limit.in_memory import InMemoryFixedWindowStore

__all__ = [
    "AbstractRateLimitStore",
    "CounterResult",
    "InMemoryFixedWindowStore",
]
