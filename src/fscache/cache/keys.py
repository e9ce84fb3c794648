"""
Cache key fingerprinting.

Keys are reduced to a canonical byte string and hashed with BLAKE2b to a
128-bit integer whose decimal form names the entry file. Unlike the
built-in hash(), the fingerprint does not depend on PYTHONHASHSEED, so a
cache directory stays readable across process restarts.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, is_dataclass
from typing import Any

import orjson
from pydantic import BaseModel

FINGERPRINT_BYTES = 16

# orjson encodes integers in [-2**63, 2**64 - 1]
_MIN_JSON_INT = -(2**63)
_MAX_JSON_INT = 2**64 - 1
_WIDE_INT_TAG = "__int__"


def _key_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return _widen_ints(obj.model_dump(mode="json"))
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError(f"Unsupported cache key type: {type(obj).__name__}")


def _is_wide_int(obj: Any) -> bool:
    return (
        isinstance(obj, int)
        and not isinstance(obj, bool)
        and not (_MIN_JSON_INT <= obj <= _MAX_JSON_INT)
    )


def _widen_ints(obj: Any) -> Any:
    """Replace integers orjson cannot encode with a tagged decimal form."""
    if _is_wide_int(obj):
        return {_WIDE_INT_TAG: str(obj)}
    if is_dataclass(obj) and not isinstance(obj, type):
        return _widen_ints(asdict(obj))
    if isinstance(obj, (list, tuple)):
        return [_widen_ints(item) for item in obj]
    if isinstance(obj, dict):
        return {
            (str(k) if _is_wide_int(k) else k): _widen_ints(v) for k, v in obj.items()
        }
    if isinstance(obj, (set, frozenset)):
        return sorted((_widen_ints(item) for item in obj), key=repr)
    return obj


def canonical_key(key: Any) -> bytes:
    """Reduce a key to deterministic bytes.

    Strings, bytes and integers are tagged so that "1", b"1" and 1 stay
    distinct from each other and from the JSON form of other keys.

    Raises:
        TypeError: If the key (or something inside it) cannot be encoded.
    """
    if isinstance(key, str):
        return b"s:" + key.encode("utf-8")
    if isinstance(key, bytes):
        return b"b:" + key
    if isinstance(key, int) and not isinstance(key, bool):
        return b"i:" + str(key).encode("ascii")
    try:
        return b"j:" + orjson.dumps(
            _widen_ints(key),
            default=_key_default,
            option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
        )
    except orjson.JSONEncodeError as e:
        raise TypeError(f"Unsupported cache key: {key!r}") from e


def fingerprint(key: Any) -> int:
    """Hash a key to a fixed-width unsigned integer."""
    digest = hashlib.blake2b(canonical_key(key), digest_size=FINGERPRINT_BYTES).digest()
    return int.from_bytes(digest, "big")
