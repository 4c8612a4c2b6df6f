"""Serialization codecs that understand composite errors.

Provides orjson (JSON) and msgpack (binary) codecs. Both encode composite
errors through their ``log_value()``, other exceptions as their message, and
anything else unknown via ``str()``. No fallback to stdlib json.

Usage:
    >>> from aerr.io import encode, decode
    >>> encode({"err": err})  # orjson by default
    b'{"err":{"code":"DB_ERROR","message":"query failed: connection timeout"}}'
    >>> encode(err, codec="msgpack")
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import msgpack
import orjson

from aerr.observability.logging import resolve_value

if TYPE_CHECKING:
    from aerr.foundation.errors import JsonValue


class CodecType(StrEnum):
    """Supported codec types."""
    ORJSON = "orjson"
    MSGPACK = "msgpack"


@runtime_checkable
class Codec(Protocol):
    """Protocol for serialization codecs."""

    name: str
    content_type: str

    def encode(self, data: object) -> bytes: ...
    def decode(self, data: bytes) -> JsonValue: ...


def _default(obj: object) -> object:
    """Fallback for values the encoder does not know natively."""
    resolved = resolve_value(obj)
    return str(obj) if resolved is obj else resolved


# ═══════════════════════════════════════════════════════════════════════════════
# Codec Implementations
# ═══════════════════════════════════════════════════════════════════════════════


class OrjsonCodec:
    """orjson codec - native datetime/uuid/dataclass support."""

    __slots__ = ()
    name = "orjson"
    content_type = "application/json"

    def encode(self, data: object) -> bytes:
        return orjson.dumps(data, default=_default, option=orjson.OPT_NON_STR_KEYS | orjson.OPT_UTC_Z)

    def decode(self, data: bytes) -> JsonValue:
        return orjson.loads(data)


class MsgpackCodec:
    """msgpack codec - compact binary, for transports that carry bytes."""

    __slots__ = ()
    name = "msgpack"
    content_type = "application/msgpack"

    def encode(self, data: object) -> bytes:
        return msgpack.packb(data, default=_default, use_bin_type=True)

    def decode(self, data: bytes) -> JsonValue:
        return msgpack.unpackb(data, raw=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Registry
# ═══════════════════════════════════════════════════════════════════════════════

_CODECS: dict[CodecType, Codec] = {
    CodecType.ORJSON: OrjsonCodec(),
    CodecType.MSGPACK: MsgpackCodec(),
}


def get_codec(codec: CodecType | str = CodecType.ORJSON) -> Codec:
    """Get codec by type. Raises ValueError for unknown names."""
    try:
        return _CODECS[CodecType(codec)]
    except ValueError:
        raise ValueError(f"Unknown codec: {codec}. Use one of {[c.value for c in CodecType]}") from None


def encode(data: object, codec: CodecType | str = CodecType.ORJSON) -> bytes:
    """Encode data (errors included) with the given codec."""
    return get_codec(codec).encode(data)


def decode(data: bytes, codec: CodecType | str = CodecType.ORJSON) -> JsonValue:
    """Decode bytes with the given codec."""
    return get_codec(codec).decode(data)
