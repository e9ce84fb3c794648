"""fscache: durable filesystem key-value cache with TTL expiry."""

__version__ = "0.1.0"

from fscache.cache import CacheProtocol, Codec, FileCache, JsonCodec, run_periodic_gc
from fscache.exceptions import (
    CacheCorruptionError,
    CacheError,
    CacheStorageError,
    CodecError,
    GarbageCollectionError,
)
from fscache.types import CacheStats, SweepReport

__all__ = [
    "__version__",
    "CacheProtocol",
    "Codec",
    "FileCache",
    "JsonCodec",
    "run_periodic_gc",
    "CacheError",
    "CacheStorageError",
    "CacheCorruptionError",
    "CodecError",
    "GarbageCollectionError",
    "CacheStats",
    "SweepReport",
]
