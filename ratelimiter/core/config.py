"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Rate limit options are read without a prefix (IP_RATE_LIMIT,
TOKEN_LIMITS, ...) so existing deployments keep their variable names.
Settings are loaded once at import time and treated as immutable.
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
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


def _coerce_seconds(value: object) -> object:
    """Accept plain numeric strings (e.g. IP_BLOCK_DURATION=60) as seconds."""
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def _require_positive(value: timedelta) -> timedelta:
    if value <= timedelta(0):
        raise ValueError("duration must be greater than zero")
    return value


class TokenLimitSettings(BaseModel):
    """Per-token override, as found in the TOKEN_LIMITS JSON mapping.

    ``block_duration`` accepts seconds (int/float) or an ISO 8601 duration.
    """

    limit: int = Field(..., ge=1)
    block_duration: timedelta

    @field_validator("block_duration", mode="before")
    @classmethod
    def _block_duration_seconds(cls, value: object) -> object:
        return _coerce_seconds(value)

    @field_validator("block_duration")
    @classmethod
    def _block_duration_positive(cls, value: timedelta) -> timedelta:
        return _require_positive(value)


class RateLimitSettings(BaseSettings):
    """Rate limiting policy configuration."""

    ip_rate_limit: int = Field(
        10,
        description="Maximum number of requests per window for an IP address",
        ge=1,
    )
    ip_block_duration: timedelta = Field(
        timedelta(minutes=1),
        description="IP window length and cooldown length (seconds or ISO 8601)",
    )
    token_rate_limit: int = Field(
        10,
        description="Default maximum number of requests per window for a token",
        ge=1,
    )
    token_block_duration: timedelta = Field(
        timedelta(minutes=1),
        description="Default token window length and cooldown length",
    )
    token_limits: dict[str, TokenLimitSettings] = Field(
        default_factory=dict,
        description='Per-token overrides as JSON: {"token": {"limit": 100, "block_duration": 60}}',
    )
    token_header: str = Field(
        "API_KEY",
        description="Request header carrying the API token",
        validation_alias="RATE_LIMIT_TOKEN_HEADER",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable the rate limit middleware",
    )
    rate_limit_exempt_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths that bypass rate limiting (JSON list)",
    )
    rate_limit_store_timeout_seconds: float = Field(
        5.0,
        description="Upper bound on one rate limit decision, store round trips included",
        gt=0,
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("ip_block_duration", "token_block_duration", mode="before")
    @classmethod
    def _durations_seconds(cls, value: object) -> object:
        return _coerce_seconds(value)

    @field_validator("ip_block_duration", "token_block_duration")
    @classmethod
    def _durations_positive(cls, value: timedelta) -> timedelta:
        return _require_positive(value)


class StoreSettings(BaseSettings):
    """Counter store backend selection."""

    backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Counter store implementation: redis (shared) or memory (single process)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Redis connection configuration."""

    addr: str = Field(
        "localhost:6379",
        description="Redis address as host:port",
    )
    password: str | None = Field(
        None,
        description="Redis password (optional)",
    )
    db: int = Field(
        0,
        description="Redis logical database index",
        ge=0,
    )
    socket_timeout_seconds: float = Field(
        5.0,
        description="Socket connect/read timeout for Redis calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )

    @property
    def host(self) -> str:
        return self.addr.rpartition(":")[0] or self.addr

    @property
    def port(self) -> int:
        _, sep, port = self.addr.rpartition(":")
        return int(port) if sep and port else 6379


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate the log file at this size (0 disables)", ge=0)
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field("X-Request-ID", description="Correlation id header")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_rate_limit_settings() -> RateLimitSettings:
    """Build rate limit settings from environment.

    Pydantic Settings (v2) populates values from environment variables;
    static type checkers treat fields as constructor arguments, hence the
    factory functions below.
    """

    return RateLimitSettings()  # type: ignore[call-arg]


def _build_store_settings() -> StoreSettings:
    return StoreSettings()  # type: ignore[call-arg]


def _build_redis_settings() -> RedisSettings:
    return RedisSettings()  # type: ignore[call-arg]


def _build_log_settings() -> LogSettings:
    return LogSettings()  # type: ignore[call-arg]


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a policy is misconfigured
    (limit < 1 or a non-positive duration).
    """

    app_env: str = APP_ENV
    host: str = Field("0.0.0.0", description="Bind address for the HTTP server")
    port: int = Field(8080, description="Port for the HTTP server")
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    store: StoreSettings = Field(default_factory=_build_store_settings)
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
