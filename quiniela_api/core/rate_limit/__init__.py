"""Request admission: named fixed-window limiter policies.

Exposes the policy type, the registry of the application's limiters, and the
FastAPI dependency that route groups attach to opt into a policy.
"""

from quiniela_api.core.rate_limit.dependency import get_registry, rate_limit, set_registry
from quiniela_api.core.rate_limit.keys import client_key
from quiniela_api.core.rate_limit.policy import LimiterConfig, LimiterPolicy, RateLimitDecision
from quiniela_api.core.rate_limit.registry import RateLimitRegistry, build_registry

__all__ = [
    "LimiterConfig",
    "LimiterPolicy",
    "RateLimitDecision",
    "RateLimitRegistry",
    "build_registry",
    "client_key",
    "get_registry",
    "rate_limit",
    "set_registry",
]
