"""Library configuration using Pydantic Settings.

Configuration is environment-aware:
- RATEWINDOW_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

Nothing here is required: every field has a default so the library can be
imported without any environment set up.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
RATEWINDOW_ENV = os.getenv("RATEWINDOW_ENV", "development")

# Resolve .env files relative to the current working directory of the host
# application, since the library may be installed anywhere.
PROJECT_ROOT = Path(os.getenv("RATEWINDOW_ENV_DIR", os.getcwd()))

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(RATEWINDOW_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


AlgorithmName = Literal["sliding_window", "fixed_window"]


def _build_limiter_settings() -> "LimiterSettings":
    """Build limiter settings from environment."""

    return LimiterSettings()


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment."""

    return LogSettings()


class LimiterSettings(BaseSettings):
    """Decision core configuration."""

    algorithm: AlgorithmName = Field(
        "sliding_window",
        description="Window algorithm used by limiters built from settings",
    )
    default_limit: int = Field(
        60,
        description="Maximum admitted requests per window when no spec is given",
        ge=1,
    )
    default_window_ms: int = Field(
        60_000,
        description="Window size in milliseconds when no spec is given",
        ge=1,
    )
    dry_run: bool = Field(
        False,
        description="Count requests but never report them as blocked",
    )
    sweep_interval_ms: int = Field(
        60_000,
        description="Minimum interval between full expiry sweeps of the in-memory store",
        ge=1,
    )
    background_sweep: bool = Field(
        False,
        description="Run the in-memory store sweep on a daemon thread",
    )
    block_cache_enabled: bool = Field(
        False,
        description="Short-circuit denied keys without store access until they reset",
    )
    block_duration_ms: int | None = Field(
        None,
        description="Ban duration applied to denied keys (requires block cache)",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATEWINDOW_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        "INFO",
        description="Root log level",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log output format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log records are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Rotated log files to keep",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    ratewindow_env: str = RATEWINDOW_ENV
    limiter: LimiterSettings = Field(default_factory=_build_limiter_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
