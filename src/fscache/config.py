"""
Configuration management using pydantic-settings.

Loads configuration from FSCACHE_* environment variables and .env files.
The cache core never reads settings itself; callers opt in through
FileCache.from_settings(), run_periodic_gc() falls back to the sweep
interval, and the CLI reads them for its defaults.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Optional:
        FSCACHE_CACHE_DIR: Directory holding entry and expiry files
        FSCACHE_DEFAULT_TTL_SECONDS: TTL applied by CLI writes when none is given
        FSCACHE_GC_INTERVAL_SECONDS: Delay between periodic sweeps
        FSCACHE_LOG_LEVEL: Logging level
        FSCACHE_LOG_FILE: JSON Lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="FSCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    CACHE_DIR: Path = Field(
        default=Path(".cache/fscache"), description="Cache directory"
    )
    DEFAULT_TTL_SECONDS: int | None = Field(
        default=None, ge=0, description="Default TTL in seconds (None = no expiry)"
    )
    GC_INTERVAL_SECONDS: float = Field(
        default=300.0, gt=0.0, description="Seconds between periodic sweeps"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON Lines log file")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("CACHE_DIR")
    @classmethod
    def validate_cache_dir(cls, v: Path) -> Path:
        """Reject a cache directory that is an existing regular file."""
        if v.exists() and not v.is_dir():
            raise ValueError(f"CACHE_DIR must be a directory, got file: {v}")
        return v

    def redacted_display(self) -> dict[str, str | int | float | None]:
        """Return settings for display."""
        return {
            "CACHE_DIR": str(self.CACHE_DIR),
            "DEFAULT_TTL_SECONDS": self.DEFAULT_TTL_SECONDS,
            "GC_INTERVAL_SECONDS": self.GC_INTERVAL_SECONDS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
