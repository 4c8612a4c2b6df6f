"""JSON type aliases shared by the aggregator, renderers and codecs."""

from __future__ import annotations

from typing import Any, Union

# Any for recursive slots to avoid Pydantic resolution issues
JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]

# Empty dict singleton to avoid allocation on attribute-less links
EMPTY_ATTRS: JsonDict = {}
