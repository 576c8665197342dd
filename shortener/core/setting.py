"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
All configuration is loaded from environment variables or .env file.

Design Decisions:
- Uses pydantic-settings for type-safe configuration
- Supports multiple environments (production, staging, dev)
- Defaults to a local MySQL server, matching a developer workstation
- DATABASE_URL overrides the MYSQL_* variables (e.g. SQLite for tests)
- Production mode runs one worker process per CPU
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["EnvSettingsOptions", "Settings", "settings"]

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class EnvSettingsOptions(Enum):
    """Environment options for deployment."""
    production = "production"
    staging = "staging"
    development = "dev"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Configuration
    ENV_SETTING: EnvSettingsOptions = Field(
        default=EnvSettingsOptions.development,
        description="Environment setting (production, staging, dev)"
    )
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    # Database Configuration
    MYSQL_HOST: str = Field(default="localhost")
    MYSQL_PORT: int = Field(default=3306)
    MYSQL_USER: str = Field(default="root")
    MYSQL_PASSWORD: str = Field(default="")
    MYSQL_DATABASE: str = Field(default="url_shortener")
    # For SQLite: sqlite+aiosqlite:///./urlshortener.db
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="Full async database URL; overrides the MYSQL_* settings when set"
    )

    DB_POOL_SIZE: int = Field(default=50, ge=1, description="Connections per worker process")
    DB_POOL_MAX_OVERFLOW: int = Field(default=0, ge=0)
    DB_POOL_TIMEOUT: float = Field(default=30.0, gt=0, description="Seconds to wait for a pooled connection")
    STORE_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0,
        description="Deadline for a single store call; exceeding it is a store failure"
    )

    # Server Configuration
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)
    BASE_URL: Optional[str] = Field(
        default=None,
        description="Public base URL for short links; derived from the request when unset"
    )
    WORKERS: Optional[int] = Field(
        default=None,
        ge=1,
        description="Worker processes in production mode (defaults to CPU count)"
    )

    # Short Code Configuration
    SHORT_CODE_LENGTH: int = Field(
        default=7,
        ge=1,
        le=10,
        description="Fixed length for all short codes (column is VARCHAR(10))"
    )
    SHORT_CODE_MAX_ATTEMPTS: int = Field(
        default=10,
        ge=0,
        description="Allocation attempts before giving up (0 = retry forever)"
    )
    CACHE_CAPACITY: int = Field(default=10000, ge=1, description="Per-worker accelerator cache entries")

    # Worker Supervision
    RESTART_BACKOFF_BASE: float = Field(default=0.5, ge=0)
    RESTART_BACKOFF_MAX: float = Field(default=30.0, ge=0)
    RESTART_STABLE_AFTER: float = Field(
        default=30.0,
        ge=0,
        description="Uptime after which a worker's crash streak is forgotten"
    )
    RESTART_MAX_CRASHES: int = Field(default=10, ge=1)
    RESTART_WINDOW_SECONDS: float = Field(default=60.0, gt=0)

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True)
    RATE_LIMIT_SHORTEN: str = Field(default="600/minute")
    RATE_LIMIT_REDIRECT: str = Field(default="6000/minute")
    RATE_LIMIT_STATS: str = Field(default="600/minute")

    @field_validator("BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        return value.rstrip("/") if value else value

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL for the configured database."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+aiomysql://{quote_plus(self.MYSQL_USER)}:{quote_plus(self.MYSQL_PASSWORD)}"
            f"@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DATABASE}"
        )

    @property
    def worker_count(self) -> int:
        """WORKERS, else the CPUs this process may run on."""
        if self.WORKERS:
            return self.WORKERS
        if hasattr(os, "sched_getaffinity"):
            return len(os.sched_getaffinity(0)) or 1
        return os.cpu_count() or 1

    @property
    def is_production(self) -> bool:
        return self.ENV_SETTING is EnvSettingsOptions.production


settings = Settings()
