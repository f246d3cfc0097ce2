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

from ratekeeper.adapters.rate_limit.base import RateLimitAlgorithm


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class RateLimitSettings(BaseSettings):
    """Admission control configuration.

    ``limit`` doubles as the bucket capacity for the token and leaky bucket
    algorithms. Rates default to ``limit`` units per ``window_ms``.
    """

    enabled: bool = Field(
        True,
        description="Enable admission control on throttled routes",
    )
    algorithm: RateLimitAlgorithm = Field(
        RateLimitAlgorithm.SLIDING_WINDOW_COUNTER,
        description="Admission algorithm used by the process-wide limiter",
    )
    limit: int = Field(
        5,
        description="Requests per window, or bucket capacity",
        ge=1,
    )
    window_ms: int = Field(
        2000,
        description="Window size in milliseconds",
        ge=1,
    )
    refill_rate: float | None = Field(
        None,
        description="Token bucket refill rate in tokens/second (default: limit per window)",
        ge=0,
        allow_inf_nan=False,
    )
    leak_rate: float | None = Field(
        None,
        description="Leaky bucket drain rate in units/second (default: limit per window)",
        ge=0,
        allow_inf_nan=False,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    @property
    def default_rate(self) -> float:
        """Units per second equivalent to ``limit`` per ``window_ms``."""
        return self.limit * 1000 / self.window_ms

    @property
    def effective_refill_rate(self) -> float:
        return self.default_rate if self.refill_rate is None else self.refill_rate

    @property
    def effective_leak_rate(self) -> float:
        return self.default_rate if self.leak_rate is None else self.leak_rate


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings()


def _build_log_settings() -> LogSettings:
    return LogSettings()


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
