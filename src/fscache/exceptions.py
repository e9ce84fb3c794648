"""
Custom exception hierarchy for fscache.

All exceptions inherit from CacheError, which provides optional context
for structured error handling and logging. A cache miss is never an
exception: lookups return None for absent or expired keys.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fscache.types import SweepReport


class CacheError(Exception):
    """Base exception for all cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(CacheError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Cache directory path points at a regular file
        - Invalid FSCACHE_* environment values
    """

    pass


class CacheStorageError(CacheError):
    """Raised when the underlying filesystem operation fails.

    Context should include:
        - path: The file or directory being accessed
        - operation: What was attempted (read, write, delete, mkdir, list)
    """

    pass


class CacheCorruptionError(CacheError):
    """Raised when stored data cannot be interpreted.

    Covers expiry files that do not hold an integer timestamp and entry
    files whose bytes do not decode into the requested type.

    Context should include:
        - path: The offending file
        - expected: What the content should have been
    """

    pass


class CodecError(CacheError):
    """Raised when a value cannot be encoded for storage."""

    pass


class GarbageCollectionError(CacheError):
    """Raised after a sweep that could not reclaim every expired entry.

    The sweep always finishes the directory before raising, so the
    attached report describes everything that was removed as well as
    every entry that failed.
    """

    def __init__(
        self,
        message: str,
        report: SweepReport,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)
        self.report = report
