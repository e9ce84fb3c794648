"""
Cache package.

- base.py: CacheProtocol, the operation contract
- file_cache.py: FileCache, the filesystem implementation
- codec.py: pluggable value codecs (JsonCodec by default)
- keys.py: stable key fingerprinting
- gc.py: optional periodic sweep loop
"""

from fscache.cache.base import CacheProtocol
from fscache.cache.codec import Codec, JsonCodec
from fscache.cache.file_cache import EXPIRY_SUFFIX, FileCache
from fscache.cache.gc import run_periodic_gc
from fscache.cache.keys import fingerprint

__all__ = [
    "CacheProtocol",
    "Codec",
    "JsonCodec",
    "EXPIRY_SUFFIX",
    "FileCache",
    "fingerprint",
    "run_periodic_gc",
]
