"""
Filesystem-backed key-value cache.

Layout of a cache directory (flat, no index):
    <fingerprint>          encoded value bytes, one file per key
    <fingerprint>.expiry   optional sidecar: UNIX epoch seconds as decimal text

The fingerprint is the decimal form of the key's 128-bit BLAKE2b hash
(see keys.py). A missing sidecar means the entry never expires.

Expiry is checked on every read, so expired values are never returned
even if no sweep has run. collect_garbage() only reclaims disk space.

The entry and its sidecar are written as two separate files. A crash
between the two writes leaves an entry without its sidecar, which reads
as an entry with no TTL. No locking is done: concurrent writers to the
same key race and the last write wins.
"""

from __future__ import annotations

import math
import re
from pathlib import Path
from typing import Any, Iterator

from fscache.cache.base import CacheProtocol
from fscache.cache.codec import Codec, JsonCodec
from fscache.cache.keys import fingerprint
from fscache.config import Settings, get_settings
from fscache.exceptions import (
    CacheCorruptionError,
    CacheError,
    CacheStorageError,
    GarbageCollectionError,
)
from fscache.logging import get_logger, log_context
from fscache.types import TTL, CacheStats, Clock, SweepReport, ttl_to_seconds, utc_now

logger = get_logger(__name__)

# Plain decimal seconds: no sign other than "-", no "_", no padding
_EXPIRY_RE = re.compile(r"-?\d+")

EXPIRY_SUFFIX = ".expiry"

# Written by invalidate(); always in the past.
EPOCH_ORIGIN = 0


def _is_entry_name(name: str) -> bool:
    return name.isascii() and name.isdigit()


def _expiry_corruption(expiry_path: Path) -> CacheCorruptionError:
    return CacheCorruptionError(
        "Expiry file does not contain a timestamp",
        context={"path": str(expiry_path), "expected": "UNIX epoch seconds"},
    )


class FileCache(CacheProtocol):
    """Cache storing each value as a file under one directory."""

    def __init__(
        self,
        cache_dir: str | Path,
        codec: Codec | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the cache and create its directory if missing.

        Args:
            cache_dir: Directory holding entry and expiry files.
            codec: Value codec. Defaults to JsonCodec.
            clock: Returns the current time. Defaults to utc_now.

        Raises:
            CacheStorageError: If the directory cannot be created.
        """
        self.cache_dir = Path(cache_dir)
        self.codec: Codec = codec or JsonCodec()
        self._clock: Clock = clock or utc_now
        self._ensure_dir()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        codec: Codec | None = None,
        clock: Clock | None = None,
    ) -> FileCache:
        """Build a cache rooted at the configured FSCACHE_CACHE_DIR."""
        settings = settings or get_settings()
        return cls(settings.CACHE_DIR, codec=codec, clock=clock)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self.cache_dir)!r})"

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------

    def entry_path(self, key: Any) -> Path:
        """Path of the entry file for a key."""
        return self.cache_dir / str(fingerprint(key))

    def expiry_path(self, key: Any) -> Path:
        """Path of the expiry sidecar for a key."""
        return self._expiry_path_for(self.entry_path(key))

    @staticmethod
    def _expiry_path_for(entry_path: Path) -> Path:
        return entry_path.with_name(entry_path.name + EXPIRY_SUFFIX)

    @staticmethod
    def _entry_path_for(expiry_path: Path) -> Path:
        return expiry_path.with_name(expiry_path.name[: -len(EXPIRY_SUFFIX)])

    # ------------------------------------------------------------------
    # Filesystem helpers (every OSError becomes CacheStorageError)
    # ------------------------------------------------------------------

    def _ensure_dir(self) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheStorageError(
                "Failed to create cache directory",
                context={"path": str(self.cache_dir), "operation": "mkdir", "error": str(e)},
            ) from e

    def _write(self, path: Path, data: bytes) -> None:
        try:
            path.write_bytes(data)
        except OSError as e:
            raise CacheStorageError(
                "Failed to write cache file",
                context={"path": str(path), "operation": "write", "error": str(e)},
            ) from e

    def _read(self, path: Path) -> bytes | None:
        """Read a file, returning None if it does not exist."""
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStorageError(
                "Failed to read cache file",
                context={"path": str(path), "operation": "read", "error": str(e)},
            ) from e

    def _unlink(self, path: Path) -> bool:
        """Remove a file. Returns False if it was already gone."""
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheStorageError(
                "Failed to delete cache file",
                context={"path": str(path), "operation": "delete", "error": str(e)},
            ) from e

    def _iter_files(self) -> Iterator[Path]:
        try:
            paths = list(self.cache_dir.iterdir())
        except OSError as e:
            raise CacheStorageError(
                "Failed to list cache directory",
                context={"path": str(self.cache_dir), "operation": "list", "error": str(e)},
            ) from e
        for path in paths:
            if path.is_file():
                yield path

    # ------------------------------------------------------------------
    # Expiry handling
    # ------------------------------------------------------------------

    def _now(self) -> float:
        return self._clock().timestamp()

    def _read_expiry(self, expiry_path: Path) -> int | None:
        """Read an expiry sidecar.

        Returns:
            The expiry timestamp, or None if there is no sidecar.

        Raises:
            CacheCorruptionError: If the sidecar is not a decimal integer.
        """
        raw = self._read(expiry_path)
        if raw is None:
            return None
        try:
            text = raw.decode("ascii")
        except UnicodeDecodeError as e:
            raise _expiry_corruption(expiry_path) from e
        if not _EXPIRY_RE.fullmatch(text):
            raise _expiry_corruption(expiry_path)
        return int(text)

    def _is_expired(self, expires_at: int, now: float | None = None) -> bool:
        if now is None:
            now = self._now()
        return expires_at <= now

    # ------------------------------------------------------------------
    # CacheProtocol
    # ------------------------------------------------------------------

    async def set(self, key: Any, value: Any, ttl: TTL | None = None) -> None:
        """Store a value, replacing any previous entry for the key.

        With a TTL, the entry expires at floor(now + ttl). Without one, any
        sidecar left by an earlier set is removed so the new value is
        permanent.

        Raises:
            ValueError: If ttl is negative.
            CodecError: If the value cannot be encoded.
            CacheStorageError: If a file cannot be written or removed.
        """
        path = self.entry_path(key)
        expiry_path = self._expiry_path_for(path)

        expires_at: int | None = None
        if ttl is not None:
            expires_at = math.floor(self._now() + ttl_to_seconds(ttl))

        data = self.codec.encode(value)

        self._ensure_dir()
        self._unlink(path)
        self._write(path, data)

        if expires_at is not None:
            self._write(expiry_path, str(expires_at).encode("ascii"))
        else:
            self._unlink(expiry_path)

        logger.debug("Cache set", entry=path.name, size=len(data), expires_at=expires_at)

    async def get(self, key: Any, value_type: Any = Any) -> Any | None:
        """Get a value, decoded into value_type.

        Returns:
            The value, or None if the key was never set, has expired or
            was invalidated.

        Raises:
            CacheCorruptionError: If the sidecar is unparseable or the
                entry does not decode into value_type.
            CacheStorageError: If a file cannot be read.
        """
        path = self.entry_path(key)

        expires_at = self._read_expiry(self._expiry_path_for(path))
        if expires_at is not None and self._is_expired(expires_at):
            logger.debug("Cache miss (expired)", entry=path.name, expires_at=expires_at)
            return None

        data = self._read(path)
        if data is None:
            logger.debug("Cache miss", entry=path.name)
            return None

        try:
            value = self.codec.decode(data, value_type)
        except CacheCorruptionError as e:
            raise CacheCorruptionError(e.message, context={**e.context, "path": str(path)}) from e
        except (ValueError, TypeError) as e:
            raise CacheCorruptionError(
                "Cached value could not be decoded",
                context={"path": str(path), "error": str(e)},
            ) from e

        logger.debug("Cache hit", entry=path.name)
        return value

    async def invalidate(self, key: Any) -> None:
        """Mark the entry expired by writing the epoch origin to its sidecar.

        The data file stays on disk until the next sweep. Safe to call
        repeatedly and on keys that were never set.
        """
        expiry_path = self.expiry_path(key)
        self._ensure_dir()
        self._write(expiry_path, str(EPOCH_ORIGIN).encode("ascii"))
        logger.debug("Cache invalidate", entry=self._entry_path_for(expiry_path).name)

    async def collect_garbage(self) -> SweepReport:
        """Sweep the directory and delete every expired entry.

        Every *.expiry file is examined. Expired ones are removed together
        with their entry file. A sidecar that cannot be parsed or removed
        is recorded as a failure and the sweep moves on to the next one.

        Returns:
            Report of the sweep when every entry was processed.

        Raises:
            GarbageCollectionError: After the full pass, if any entry
                failed. The report is attached to the exception.
            CacheStorageError: If the directory cannot be listed.
        """
        report = SweepReport(started_at=self._clock())
        now = report.started_at.timestamp()

        with log_context(cache_dir=self.cache_dir, operation="collect_garbage"):
            for expiry_path in self._iter_files():
                if not expiry_path.name.endswith(EXPIRY_SUFFIX):
                    continue

                report.scanned += 1
                try:
                    expires_at = self._read_expiry(expiry_path)
                    if expires_at is None:
                        # Removed by someone else since the listing
                        continue
                    if not self._is_expired(expires_at, now):
                        report.kept += 1
                        continue

                    self._unlink(self._entry_path_for(expiry_path))
                    self._unlink(expiry_path)
                    report.removed += 1
                except CacheError as e:
                    logger.warning("Sweep skipped entry", path=expiry_path.name, error=str(e))
                    report.record_failure(expiry_path, e)

            logger.info(
                "Sweep complete",
                scanned=report.scanned,
                removed=report.removed,
                kept=report.kept,
                failed=len(report.failures),
            )

        if report.failures:
            raise GarbageCollectionError(
                "Sweep could not process every entry",
                report=report,
                context={
                    "cache_dir": str(self.cache_dir),
                    "failed": len(report.failures),
                    "removed": report.removed,
                },
            )
        return report

    async def delete(self, key: Any) -> bool:
        """Remove the entry and its sidecar now.

        Returns:
            True if an entry file existed.
        """
        path = self.entry_path(key)
        existed = self._unlink(path)
        self._unlink(self._expiry_path_for(path))
        return existed

    async def exists(self, key: Any) -> bool:
        """Check for a live entry without decoding it."""
        path = self.entry_path(key)
        expires_at = self._read_expiry(self._expiry_path_for(path))
        if expires_at is not None and self._is_expired(expires_at):
            return False
        return path.is_file()

    async def clear(self) -> int:
        """Remove every entry and sidecar. Unrelated files are left alone."""
        removed = 0
        for path in self._iter_files():
            name = path.name
            if name.endswith(EXPIRY_SUFFIX):
                if _is_entry_name(name[: -len(EXPIRY_SUFFIX)]):
                    self._unlink(path)
            elif _is_entry_name(name) and self._unlink(path):
                removed += 1

        logger.info("Cache cleared", cache_dir=str(self.cache_dir), removed=removed)
        return removed

    async def stats(self) -> CacheStats:
        """Summarize the directory contents."""
        now = self._now()
        entry_names: set[str] = set()
        expiry_paths: list[Path] = []
        total_bytes = 0

        for path in self._iter_files():
            name = path.name
            if name.endswith(EXPIRY_SUFFIX):
                expiry_paths.append(path)
            elif _is_entry_name(name):
                entry_names.add(name)
            else:
                continue
            try:
                total_bytes += path.stat().st_size
            except FileNotFoundError:
                continue

        with_ttl = expired = orphans = corrupt = 0
        for expiry_path in expiry_paths:
            entry_name = self._entry_path_for(expiry_path).name
            if entry_name not in entry_names:
                orphans += 1
                continue
            try:
                expires_at = self._read_expiry(expiry_path)
            except CacheCorruptionError:
                corrupt += 1
                continue
            if expires_at is None:
                continue
            with_ttl += 1
            if self._is_expired(expires_at, now):
                expired += 1

        return CacheStats(
            entries=len(entry_names),
            entries_with_ttl=with_ttl,
            expired_entries=expired,
            orphan_expiry_files=orphans,
            corrupt_expiry_files=corrupt,
            total_bytes=total_bytes,
        )
