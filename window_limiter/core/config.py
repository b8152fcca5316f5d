"""Service configuration using Pydantic Settings.

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


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment."""

    return LimiterSettings()


def _build_store_settings() -> "StoreSettings":
    """Build store settings from environment."""

    return StoreSettings()


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment."""

    return LogSettings()


class LimiterSettings(BaseSettings):
    """Limits applied by the HTTP service.

    Two limiters are built from these values: the service limiter answering
    ``/v1/limits/check`` and the guard limiter protecting the service's own
    routes per client.
    """

    enabled: bool = Field(
        True,
        description="Enable the per-client guard on the service's own routes",
    )
    name: str = Field(
        "api",
        description="Name of the service limiter (alphanumeric, '.', '_', '-')",
        pattern=r"^[A-Za-z0-9._-]+$",
    )
    namespace: str = Field(
        "",
        description="Optional key prefix shared by all limiters of this service",
    )
    limit: int = Field(
        10,
        description="Maximum number of trials per window for the service limiter",
        ge=1,
    )
    period_ms: int = Field(
        60_000,
        description="Window size in milliseconds for the service limiter",
        ge=1,
    )
    delay_ms: int = Field(
        0,
        description="Throttle delay per excess trial in milliseconds (0 rejects)",
        ge=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    guard_name: str = Field(
        "http",
        description="Name of the per-client guard limiter",
        pattern=r"^[A-Za-z0-9._-]+$",
    )
    guard_limit: int = Field(
        60,
        description="Maximum number of requests per window and client",
        ge=1,
    )
    guard_period_ms: int = Field(
        60_000,
        description="Guard window size in milliseconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="LIMITER_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Counter store backend selection."""

    backend: str = Field(
        "memory",
        description="Counter store backend: 'memory' (per-process) or 'redis'",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL used when backend is 'redis'",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log output: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output is 'file'")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Number of rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main service settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    store: StoreSettings = Field(default_factory=_build_store_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
