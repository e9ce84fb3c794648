"""
Tests for the filesystem cache.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import BaseModel

from conftest import FakeClock
from fscache.cache.file_cache import EXPIRY_SUFFIX, FileCache
from fscache.exceptions import CacheCorruptionError, CacheStorageError, CodecError


class User(BaseModel):
    name: str
    age: int | None = None


class TestPaths:
    """Test key to path resolution."""

    def test_entry_path_is_decimal_name_in_cache_dir(
        self, cache: FileCache, cache_dir: Path
    ) -> None:
        """Test that entry files are named by the decimal fingerprint."""
        path = cache.entry_path("user:42")
        assert path.parent == cache_dir
        assert path.name.isdigit()

    def test_expiry_path_adds_suffix(self, cache: FileCache) -> None:
        """Test that the sidecar shares the entry name plus the suffix."""
        entry = cache.entry_path("user:42")
        expiry = cache.expiry_path("user:42")
        assert expiry.name == entry.name + EXPIRY_SUFFIX

    def test_paths_are_stable(self, cache_dir: Path, clock: FakeClock) -> None:
        """Test that two caches on the same directory agree on paths."""
        first = FileCache(cache_dir, clock=clock)
        second = FileCache(cache_dir, clock=clock)
        assert first.entry_path(("a", 1)) == second.entry_path(("a", 1))

    def test_directory_created_recursively(self, temp_dir: Path) -> None:
        """Test that a missing nested directory is created."""
        nested = temp_dir / "a" / "b" / "c"
        FileCache(nested)
        assert nested.is_dir()

    @pytest.mark.asyncio
    async def test_directory_recreated_on_write(
        self, cache: FileCache, cache_dir: Path
    ) -> None:
        """Test that set recreates a directory removed after construction."""
        cache_dir.rmdir()
        assert not cache_dir.exists()

        await cache.set("k", 1)
        assert cache.entry_path("k").is_file()

    def test_directory_on_regular_file_raises_storage_error(self, temp_dir: Path) -> None:
        """Test that a file in place of the directory is a storage error."""
        blocker = temp_dir / "blocker"
        blocker.write_text("x")

        with pytest.raises(CacheStorageError) as exc_info:
            FileCache(blocker)

        assert exc_info.value.context["operation"] == "mkdir"


class TestSetAndGet:
    """Test round-trip storage."""

    @pytest.mark.asyncio
    async def test_round_trip(self, cache: FileCache) -> None:
        """Test that a stored value reads back unchanged."""
        value = {"name": "A", "tags": ["x", "y"], "score": 1.5, "active": True, "none": None}
        await cache.set("user:42", value)
        assert await cache.get("user:42") == value

    @pytest.mark.asyncio
    async def test_round_trip_scalars(self, cache: FileCache) -> None:
        """Test scalar values, including falsy ones."""
        await cache.set("zero", 0)
        await cache.set("empty", "")
        await cache.set("false", False)

        assert await cache.get("zero") == 0
        assert await cache.get("empty") == ""
        assert await cache.get("false") is False

    @pytest.mark.asyncio
    async def test_entry_file_contains_json(self, cache: FileCache) -> None:
        """Test that the entry file holds the encoded value."""
        await cache.set("k", {"a": 1})
        assert cache.entry_path("k").read_bytes() == b'{"a":1}'

    @pytest.mark.asyncio
    async def test_get_decodes_into_model(self, cache: FileCache) -> None:
        """Test that pydantic models round-trip through value_type."""
        await cache.set("user", User(name="B", age=30))

        result = await cache.get("user", User)

        assert isinstance(result, User)
        assert result == User(name="B", age=30)

    @pytest.mark.asyncio
    async def test_get_decodes_into_generic_type(self, cache: FileCache) -> None:
        """Test that parametrized types are validated."""
        await cache.set("ids", [1, 2, 3])
        assert await cache.get("ids", list[int]) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_overwrite(self, cache: FileCache) -> None:
        """Test that the second set wins."""
        await cache.set("k", "v1")
        await cache.set("k", "v2")
        assert await cache.get("k") == "v2"

    @pytest.mark.asyncio
    async def test_overwrite_with_shorter_value(self, cache: FileCache) -> None:
        """Test that no bytes of a longer previous value survive."""
        await cache.set("k", "a much longer first value")
        await cache.set("k", "b")
        assert await cache.get("k") == "b"

    @pytest.mark.asyncio
    async def test_non_string_keys(self, cache: FileCache) -> None:
        """Test tuple, int and dict keys."""
        await cache.set(("user", 42), "tuple")
        await cache.set(42, "int")
        await cache.set({"b": 2, "a": 1}, "dict")

        assert await cache.get(("user", 42)) == "tuple"
        assert await cache.get(42) == "int"
        assert await cache.get({"a": 1, "b": 2}) == "dict"

    @pytest.mark.asyncio
    async def test_unencodable_value_raises_codec_error(self, cache: FileCache) -> None:
        """Test that encoding failures surface and write nothing."""
        with pytest.raises(CodecError):
            await cache.set("k", object())

        assert not cache.entry_path("k").exists()


class TestAbsence:
    """Test that misses are None and distinct from corruption."""

    @pytest.mark.asyncio
    async def test_get_never_set_returns_none(self, cache: FileCache) -> None:
        """Test that an unknown key is a miss, not an error."""
        assert await cache.get("never-set") is None

    @pytest.mark.asyncio
    async def test_unparseable_entry_raises(self, cache: FileCache) -> None:
        """Test that garbage bytes in the entry file are corruption."""
        cache.entry_path("k").write_bytes(b"{not json")

        with pytest.raises(CacheCorruptionError) as exc_info:
            await cache.get("k")

        assert exc_info.value.context["path"] == str(cache.entry_path("k"))

    @pytest.mark.asyncio
    async def test_type_mismatch_raises(self, cache: FileCache) -> None:
        """Test that a value of the wrong shape is corruption."""
        await cache.set("k", {"name": "A"})

        with pytest.raises(CacheCorruptionError):
            await cache.get("k", list[int])

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("stored", "value_type"), [("5", int), ("yes", bool), (1, str), (1.5, int)]
    )
    async def test_typed_get_does_not_coerce(
        self, cache: FileCache, stored: object, value_type: type
    ) -> None:
        """Test that a stored value of another JSON type is not coerced."""
        await cache.set("k", stored)

        with pytest.raises(CacheCorruptionError):
            await cache.get("k", value_type)

    @pytest.mark.asyncio
    async def test_unreadable_entry_raises_storage_error(self, cache: FileCache) -> None:
        """Test that a read failure other than absence is a storage error."""
        cache.entry_path("k").mkdir()

        with pytest.raises(CacheStorageError) as exc_info:
            await cache.get("k")

        assert exc_info.value.context["operation"] == "read"


class TestTTL:
    """Test expiry handling."""

    @pytest.mark.asyncio
    async def test_value_expires_after_ttl(self, cache: FileCache, clock: FakeClock) -> None:
        """Test that a value is visible before its TTL and gone after."""
        await cache.set("k", "v", ttl=60)

        clock.advance(30)
        assert await cache.get("k") == "v"

        clock.advance(31)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_timedelta_ttl(self, cache: FileCache, clock: FakeClock) -> None:
        """Test that timedelta TTLs are accepted."""
        await cache.set("k", "v", ttl=timedelta(hours=1))
        assert await cache.get("k") == "v"

        clock.advance(3600)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_zero_ttl_is_immediately_expired(self, cache: FileCache) -> None:
        """Test that ttl=0 never returns the value."""
        await cache.set("k", "v", ttl=0)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_expiry_file_holds_epoch_seconds(
        self, cache: FileCache, clock: FakeClock
    ) -> None:
        """Test that the sidecar holds floor(now + ttl) as decimal text."""
        await cache.set("k", "v", ttl=10)

        expected = int(clock.now.timestamp()) + 10
        assert cache.expiry_path("k").read_text() == str(expected)

    @pytest.mark.asyncio
    async def test_set_without_ttl_writes_no_expiry(self, cache: FileCache) -> None:
        """Test that permanent entries have no sidecar."""
        await cache.set("k", "v")
        assert not cache.expiry_path("k").exists()

    @pytest.mark.asyncio
    async def test_set_without_ttl_clears_previous_expiry(
        self, cache: FileCache, clock: FakeClock
    ) -> None:
        """Test that re-setting without a TTL makes the entry permanent."""
        await cache.set("k", "v1", ttl=10)
        assert cache.expiry_path("k").exists()

        await cache.set("k", "v2")
        assert not cache.expiry_path("k").exists()

        clock.advance(3600)
        assert await cache.get("k") == "v2"

    @pytest.mark.asyncio
    async def test_set_with_ttl_replaces_previous_expiry(
        self, cache: FileCache, clock: FakeClock
    ) -> None:
        """Test that re-setting with a TTL resets the deadline."""
        await cache.set("k", "v1", ttl=10)
        clock.advance(5)
        await cache.set("k", "v2", ttl=60)

        clock.advance(30)
        assert await cache.get("k") == "v2"

    @pytest.mark.asyncio
    async def test_expiry_checked_even_without_entry(self, cache: FileCache) -> None:
        """Test that an expired sidecar hides the entry before any read."""
        await cache.set("k", "v", ttl=0)
        cache.entry_path("k").write_bytes(b"{not json")

        # Expired, so the corrupt entry is never decoded
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_missing_expiry_means_no_ttl(self, cache: FileCache, clock: FakeClock) -> None:
        """Test that an entry whose sidecar is lost never expires."""
        await cache.set("k", "v", ttl=10)
        cache.expiry_path("k").unlink()

        clock.advance(3600)
        assert await cache.get("k") == "v"

    @pytest.mark.asyncio
    async def test_corrupt_expiry_raises(self, cache: FileCache) -> None:
        """Test that an unparseable sidecar is corruption."""
        await cache.set("k", "v")
        cache.expiry_path("k").write_text("tomorrow")

        with pytest.raises(CacheCorruptionError) as exc_info:
            await cache.get("k")

        assert exc_info.value.context["path"] == str(cache.expiry_path("k"))

    @pytest.mark.asyncio
    async def test_negative_ttl_rejected(self, cache: FileCache) -> None:
        """Test that negative TTLs raise before anything is written."""
        with pytest.raises(ValueError):
            await cache.set("k", "v", ttl=-1)

        assert not cache.entry_path("k").exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [float("inf"), float("nan"), float("-inf")])
    async def test_non_finite_ttl_rejected(self, cache: FileCache, ttl: float) -> None:
        """Test that infinite and NaN TTLs raise like negative ones."""
        with pytest.raises(ValueError, match="finite non-negative"):
            await cache.set("k", "v", ttl=ttl)

        assert not cache.entry_path("k").exists()
        assert not cache.expiry_path("k").exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["1_000", "+5", " 5", "5\n", "٥", ""])
    async def test_non_decimal_expiry_raises(self, cache: FileCache, content: str) -> None:
        """Test that only plain decimal digits are accepted in a sidecar."""
        await cache.set("k", "v")
        cache.expiry_path("k").write_text(content, encoding="utf-8")

        with pytest.raises(CacheCorruptionError):
            await cache.get("k")

    @pytest.mark.asyncio
    async def test_negative_expiry_is_expired(self, cache: FileCache) -> None:
        """Test that a negative timestamp parses and reads as expired."""
        await cache.set("k", "v")
        cache.expiry_path("k").write_text("-5")

        assert await cache.get("k") is None


class TestInvalidate:
    """Test invalidation."""

    @pytest.mark.asyncio
    async def test_invalidate_hides_value(self, cache: FileCache) -> None:
        """Test that invalidated entries read as absent."""
        await cache.set("k", "v")
        await cache.invalidate("k")

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_invalidate_keeps_data_file(self, cache: FileCache) -> None:
        """Test that invalidation defers deletion to the sweep."""
        await cache.set("k", "v")
        await cache.invalidate("k")

        assert cache.entry_path("k").exists()
        assert cache.expiry_path("k").read_text() == "0"

    @pytest.mark.asyncio
    async def test_invalidate_is_idempotent(self, cache: FileCache) -> None:
        """Test repeated invalidation."""
        await cache.set("k", "v", ttl=3600)
        for _ in range(3):
            await cache.invalidate("k")

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_invalidate_never_set_key(self, cache: FileCache) -> None:
        """Test that invalidating an unknown key is not an error."""
        await cache.invalidate("never-set")
        assert await cache.get("never-set") is None

    @pytest.mark.asyncio
    async def test_set_after_invalidate_revives(self, cache: FileCache) -> None:
        """Test that a fresh set without TTL replaces the invalidation."""
        await cache.set("k", "v1")
        await cache.invalidate("k")
        await cache.set("k", "v2")

        assert await cache.get("k") == "v2"


class TestDeleteExistsClear:
    """Test the delete/exists/clear helpers."""

    @pytest.mark.asyncio
    async def test_delete_removes_both_files(self, cache: FileCache) -> None:
        """Test that delete removes the entry and its sidecar."""
        await cache.set("k", "v", ttl=60)

        assert await cache.delete("k") is True
        assert not cache.entry_path("k").exists()
        assert not cache.expiry_path("k").exists()

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, cache: FileCache) -> None:
        """Test delete on an unknown key."""
        assert await cache.delete("never-set") is False

    @pytest.mark.asyncio
    async def test_exists(self, cache: FileCache, clock: FakeClock) -> None:
        """Test exists for live, expired and missing keys."""
        await cache.set("live", 1)
        await cache.set("short", 2, ttl=5)

        assert await cache.exists("live") is True
        assert await cache.exists("short") is True
        assert await cache.exists("missing") is False

        clock.advance(10)
        assert await cache.exists("short") is False

    @pytest.mark.asyncio
    async def test_clear_removes_entries_only(self, cache: FileCache, cache_dir: Path) -> None:
        """Test that clear leaves unrelated files alone."""
        await cache.set("a", 1)
        await cache.set("b", 2, ttl=60)
        await cache.invalidate("c")
        (cache_dir / "README.txt").write_text("keep me")

        removed = await cache.clear()

        assert removed == 2
        assert sorted(p.name for p in cache_dir.iterdir()) == ["README.txt"]


class TestStats:
    """Test directory statistics."""

    @pytest.mark.asyncio
    async def test_stats_counts(self, cache: FileCache, clock: FakeClock) -> None:
        """Test entry, TTL, expired and orphan counts."""
        await cache.set("permanent", "p")
        await cache.set("future", "f", ttl=3600)
        await cache.set("past", "x", ttl=0)
        await cache.invalidate("orphan")
        await cache.set("corrupt", "c")
        cache.expiry_path("corrupt").write_text("??")

        stats = await cache.stats()

        assert stats.entries == 4
        assert stats.entries_with_ttl == 2
        assert stats.expired_entries == 1
        assert stats.orphan_expiry_files == 1
        assert stats.corrupt_expiry_files == 1
        assert stats.total_bytes > 0

    @pytest.mark.asyncio
    async def test_stats_empty(self, cache: FileCache) -> None:
        """Test stats on an empty directory."""
        stats = await cache.stats()
        assert stats.to_dict() == {
            "entries": 0,
            "entries_with_ttl": 0,
            "expired_entries": 0,
            "orphan_expiry_files": 0,
            "corrupt_expiry_files": 0,
            "total_bytes": 0,
        }


class TestFromSettings:
    """Test construction from settings."""

    def test_from_settings_uses_cache_dir(self, mock_env_vars: dict[str, str]) -> None:
        """Test that FSCACHE_CACHE_DIR roots the cache."""
        cache = FileCache.from_settings()

        assert cache.cache_dir == Path(mock_env_vars["FSCACHE_CACHE_DIR"])
        assert cache.cache_dir.is_dir()


class TestScenario:
    """End-to-end walk through a key's lifecycle."""

    @pytest.mark.asyncio
    async def test_user_lifecycle(self, cache: FileCache) -> None:
        """Test expiry, replacement, invalidation and reclamation of one key."""
        await cache.set("user:42", {"name": "A"}, ttl=timedelta(seconds=0))
        assert await cache.get("user:42") is None

        await cache.set("user:42", {"name": "B"}, ttl=timedelta(hours=1))
        assert await cache.get("user:42") == {"name": "B"}

        await cache.invalidate("user:42")
        assert await cache.get("user:42") is None

        await cache.collect_garbage()
        assert not cache.entry_path("user:42").exists()
        assert not cache.expiry_path("user:42").exists()
