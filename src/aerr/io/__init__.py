"""Serialization codecs (orjson, msgpack) aware of composite errors."""

from .codec import Codec, CodecType, MsgpackCodec, OrjsonCodec, decode, encode, get_codec

__all__ = ["Codec", "CodecType", "MsgpackCodec", "OrjsonCodec", "decode", "encode", "get_codec"]
