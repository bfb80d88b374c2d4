"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might load settings.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")

from unittest.mock import Mock

import pytest

from quiniela_api.adapters.rate_limit.in_memory import InMemoryFixedWindowStore
from quiniela_api.core.config import RateLimitSettings
from quiniela_api.core.rate_limit import RateLimitRegistry, build_registry


@pytest.fixture
def clock() -> Mock:
    """Millisecond clock frozen at an arbitrary instant; tests move it."""
    return Mock(return_value=1_000_000.0)


@pytest.fixture
def store() -> InMemoryFixedWindowStore:
    return InMemoryFixedWindowStore()


@pytest.fixture
def rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()  # type: ignore[call-arg]


@pytest.fixture
def registry(
    rate_limit_settings: RateLimitSettings,
    store: InMemoryFixedWindowStore,
    clock: Mock,
) -> RateLimitRegistry:
    return build_registry(rate_limit_settings, store=store, clock=clock)
