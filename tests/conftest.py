"""
Pytest configuration and fixtures for fscache tests.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest

from fscache.cache.file_cache import FileCache
from fscache.config import Settings, clear_settings_cache
from fscache.logging import reset_logging


class FakeClock:
    """Controllable clock for TTL tests."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock fixed at a fractional second."""
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc))


@pytest.fixture
def cache_dir(temp_dir: Path) -> Path:
    """Provide the directory used by the cache fixture."""
    return temp_dir / "cache"


@pytest.fixture
def cache(cache_dir: Path, clock: FakeClock) -> FileCache:
    """Provide a FileCache driven by the fake clock."""
    return FileCache(cache_dir, clock=clock)


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock FSCACHE_* environment variables for testing."""
    env_vars = {
        "FSCACHE_CACHE_DIR": str(temp_dir / "env_cache"),
        "FSCACHE_DEFAULT_TTL_SECONDS": "120",
        "FSCACHE_GC_INTERVAL_SECONDS": "30",
        "FSCACHE_LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    from fscache.config import get_settings

    yield get_settings()
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_fscache_logging() -> Generator[None, None, None]:
    """Undo any setup_logging() a test (or the CLI under test) performed."""
    reset_logging()
    yield
    reset_logging()
