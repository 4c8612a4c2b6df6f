"""Composite errors: one link, the fluent builder, stack capture and chain aggregation."""

from .aggregate import (
    EMPTY_AGGREGATE,
    SEPARATOR,
    Aggregate,
    LinkRecord,
    aggregate,
    flatten,
    flatten_dict,
    render,
    render_attributes,
    render_value,
    traces,
    walk,
)
from .builder import Builder, code, message
from .error import (
    CompositeError,
    as_aerr,
    as_type,
    chain,
    get_attributes,
    get_cause,
    get_code,
    get_message,
    get_stack,
    is_in_chain,
    unwrap,
)
from .stack import EMPTY_STACK, FrameId, ResolvedFrame, Stack, capture_stack, format_frame, format_stack, resolve_frame

__all__ = [
    # Link
    "CompositeError", "Builder", "code", "message",
    # Accessors & interop
    "as_aerr", "get_message", "get_code", "get_attributes", "get_stack", "get_cause",
    "unwrap", "chain", "is_in_chain", "as_type",
    # Aggregation
    "Aggregate", "LinkRecord", "EMPTY_AGGREGATE", "SEPARATOR",
    "aggregate", "flatten", "flatten_dict", "traces", "render", "render_value", "render_attributes", "walk",
    # Stack
    "FrameId", "ResolvedFrame", "Stack", "EMPTY_STACK",
    "capture_stack", "resolve_frame", "format_frame", "format_stack",
]
