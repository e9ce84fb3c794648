"""
Core types for fscache.

This module defines the data structures shared across the package:
- Frozen dataclasses for sweep failures and cache statistics
- Mutable SweepReport accumulated during a garbage-collection pass
- Clock helpers used for TTL arithmetic
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

# Callable returning the current time; injectable for tests.
Clock = Callable[[], datetime]

# TTLs accept either a timedelta or a number of seconds.
TTL = timedelta | int | float


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def ttl_to_seconds(ttl: TTL) -> float:
    """Normalize a TTL to seconds.

    Args:
        ttl: Duration as a timedelta or number of seconds.

    Returns:
        The duration in seconds.

    Raises:
        ValueError: If the duration is negative, infinite or NaN.
    """
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"TTL must be a finite non-negative duration, got {seconds}s")
    return seconds


@dataclass(frozen=True)
class SweepFailure:
    """One expiry file a sweep could not process."""

    path: Path
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"path": str(self.path), "error": self.error}


@dataclass
class SweepReport:
    """Outcome of one garbage-collection pass over a cache directory."""

    started_at: datetime
    scanned: int = 0  # expiry files examined
    removed: int = 0  # expired entries reclaimed
    kept: int = 0  # expiry files still in the future
    failures: list[SweepFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def record_failure(self, path: Path, error: Exception) -> None:
        """Record a per-entry failure without stopping the sweep."""
        self.failures.append(SweepFailure(path=path, error=str(error)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "scanned": self.scanned,
            "removed": self.removed,
            "kept": self.kept,
            "failures": [f.to_dict() for f in self.failures],
        }


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time summary of a cache directory.

    Counts are taken from a single directory listing. Concurrent writers
    may change the directory while it is being read.
    """

    entries: int
    entries_with_ttl: int
    expired_entries: int
    orphan_expiry_files: int  # expiry sidecars without an entry file
    corrupt_expiry_files: int
    total_bytes: int

    def to_dict(self) -> dict[str, int]:
        return {
            "entries": self.entries,
            "entries_with_ttl": self.entries_with_ttl,
            "expired_entries": self.expired_entries,
            "orphan_expiry_files": self.orphan_expiry_files,
            "corrupt_expiry_files": self.corrupt_expiry_files,
            "total_bytes": self.total_bytes,
        }
