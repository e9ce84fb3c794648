"""
Base classes for caching.

CacheProtocol is the operation contract every cache backing satisfies:
- set/get with optional TTL-based expiration
- invalidate, which makes an entry read as expired without deleting it
- collect_garbage, which permanently reclaims expired entries
- delete/exists/clear helpers

Keys may be any value the key fingerprinting accepts (strings, numbers,
tuples, dicts, dataclasses, pydantic models). Values may be anything the
configured codec can encode.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from fscache.types import TTL, SweepReport


class CacheProtocol(ABC):
    """Abstract interface for cache implementations.

    A miss (never set, expired or invalidated) is reported as None.
    Storage and corruption faults raise CacheError subclasses.
    """

    @abstractmethod
    async def set(self, key: Any, value: Any, ttl: TTL | None = None) -> None:
        """Store a value, replacing any previous value for the key.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Time-to-live. None means the entry never expires.
        """
        ...

    @abstractmethod
    async def get(self, key: Any, value_type: Any = Any) -> Any | None:
        """Get a value from the cache.

        Args:
            key: Cache key.
            value_type: Type the stored value is decoded into.

        Returns:
            The value, or None if missing or expired.
        """
        ...

    @abstractmethod
    async def invalidate(self, key: Any) -> None:
        """Force the entry to read as expired on the next get."""
        ...

    @abstractmethod
    async def collect_garbage(self) -> SweepReport:
        """Permanently remove every entry whose expiry has passed."""
        ...

    @abstractmethod
    async def delete(self, key: Any) -> bool:
        """Delete a value from the cache immediately."""
        ...

    @abstractmethod
    async def exists(self, key: Any) -> bool:
        """Check if a live (unexpired) entry exists for the key."""
        ...

    @abstractmethod
    async def clear(self) -> int:
        """Remove every entry. Returns the number of entries removed."""
        ...
