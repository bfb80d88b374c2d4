"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables, but
    static type checkers treat fields as constructor arguments.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    health_path: str = Field(
        "/health",
        description="Path of the health check endpoint (never rate limited)",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Request admission (rate limiting) configuration.

    Windows are expressed in milliseconds. Invalid values (e.g., a zero-length
    window) fail validation at startup, never at request time.
    """

    enabled: bool = Field(
        True,
        description="Enable rate limiting on every registered policy",
    )
    standard_headers: bool = Field(
        True,
        description="Expose RateLimit-Limit/Remaining/Reset headers",
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Use the first X-Forwarded-For address as client key (behind a proxy)",
    )

    api_window_ms: int = Field(60_000, description="General API window", ge=1)
    api_max_requests: int = Field(100, description="General API requests per window", ge=1)
    auth_window_ms: int = Field(900_000, description="Login attempts window", ge=1)
    auth_max_requests: int = Field(10, description="Login attempts per window", ge=1)
    password_reset_window_ms: int = Field(
        3_600_000,
        description="Password reset window",
        ge=1,
    )
    password_reset_max_requests: int = Field(
        5,
        description="Password reset requests per window",
        ge=1,
    )
    create_resource_window_ms: int = Field(
        3_600_000,
        description="Resource creation (pools, invites) window",
        ge=1,
    )
    create_resource_max_requests: int = Field(
        20,
        description="Resource creations per window",
        ge=1,
    )
    feedback_window_ms: int = Field(60_000, description="Feedback submission window", ge=1)
    feedback_max_requests: int = Field(5, description="Feedback submissions per window", ge=1)

    eviction_windows: int = Field(
        2,
        description="Windows of inactivity after which a client's counter is evicted",
        ge=1,
    )
    sweep_every_hits: int = Field(
        1000,
        description="Number of counted requests between eviction sweeps",
        ge=1,
    )
    max_keys: int = Field(
        100_000,
        description="Maximum number of tracked (policy, client) counters",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
