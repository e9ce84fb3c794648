"""
Value codecs for the cache.

A codec turns values into bytes for storage and back. The cache only
relies on the Codec protocol, so callers can inject their own format.

JsonCodec is the default:
- orjson for encoding (dataclasses, datetimes, UUIDs and enums natively,
  pydantic models through model_dump)
- pydantic TypeAdapter (strict mode) for decoding into the caller's
  expected type
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol, TypeVar, runtime_checkable

import orjson
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from fscache.exceptions import CacheCorruptionError, CodecError

T = TypeVar("T")


@runtime_checkable
class Codec(Protocol):
    """Encode/decode capability injected into a cache.

    decode() must raise CacheCorruptionError (or ValueError/TypeError)
    when the bytes cannot be turned into the requested type.
    """

    def encode(self, value: Any) -> bytes:
        ...

    def decode(self, data: bytes, value_type: Any = Any) -> Any:
        ...


def _orjson_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=repr)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


@lru_cache(maxsize=256)
def _adapter(value_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(value_type)


class JsonCodec:
    """JSON codec backed by orjson and pydantic."""

    def __init__(self, sort_keys: bool = False) -> None:
        """Initialize the codec.

        Args:
            sort_keys: Write object keys in sorted order for byte-stable files.
        """
        self._option = orjson.OPT_NON_STR_KEYS
        if sort_keys:
            self._option |= orjson.OPT_SORT_KEYS

    def encode(self, value: Any) -> bytes:
        try:
            return orjson.dumps(value, default=_orjson_default, option=self._option)
        except orjson.JSONEncodeError as e:
            raise CodecError(
                "Value cannot be encoded as JSON",
                context={"value_type": type(value).__name__, "error": str(e)},
            ) from e

    def decode(self, data: bytes, value_type: Any = Any) -> Any:
        """Decode JSON bytes, validating into value_type when one is given.

        Validation is strict: "5" is not an int and "yes" is not a bool.

        Raises:
            CacheCorruptionError: If the bytes are not JSON or do not
                match value_type.
        """
        if value_type is Any or value_type is object:
            try:
                return orjson.loads(data)
            except orjson.JSONDecodeError as e:
                raise CacheCorruptionError(
                    "Cached value is not valid JSON", context={"error": str(e)}
                ) from e

        try:
            return _adapter(value_type).validate_json(data, strict=True)
        except PydanticValidationError as e:
            raise CacheCorruptionError(
                "Cached value does not match the requested type",
                context={
                    "expected": getattr(value_type, "__name__", repr(value_type)),
                    "errors": e.error_count(),
                },
            ) from e
