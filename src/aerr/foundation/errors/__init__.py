"""Library error taxonomy and JSON type aliases."""

from .errors import AerrError, InvalidArgument
from .types import EMPTY_ATTRS, JsonDict, JsonPrimitive, JsonValue

__all__ = ["AerrError", "InvalidArgument", "EMPTY_ATTRS", "JsonDict", "JsonPrimitive", "JsonValue"]
