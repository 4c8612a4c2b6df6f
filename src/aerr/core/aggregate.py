"""Flatten an error chain into one structured record.

The walk goes outer to inner along ``cause`` links and stops at the first
non-composite error, which contributes only its message:

- messages: non-empty link messages, joined with ``": "``
- code: first (outermost) non-empty code
- attributes: union of all links; outer values win, ``None`` values dropped
- stacktrace: formatted frames of every link, each distinct frame once

``aggregate`` produces the merged record; ``flatten`` walks the same chain
but keeps one record per link.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from aerr.foundation.config import get_settings

from .error import CompositeError
from .stack import format_frame

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from aerr.foundation.config import RenderVariant
    from aerr.foundation.errors import JsonDict

    from .stack import Stack

logger = logging.getLogger("aerr.aggregate")

SEPARATOR = ": "

# Pre-allocated empty tuple for stack-less results
_EMPTY_FRAMES: tuple[str, ...] = ()


# ═════════════════════════════════════════════════════════════════════════════
# Result Models
# ═════════════════════════════════════════════════════════════════════════════


class Aggregate(BaseModel):
    """Merged view of an error chain, ready to emit as one log record."""

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")

    code: str | None = None
    message: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    stacktrace: tuple[str, ...] = _EMPTY_FRAMES

    def to_dict(self) -> JsonDict:
        """Fields in fixed order (code, message, attributes, stacktrace), empty ones omitted."""
        out: JsonDict = {}
        if self.code:
            out["code"] = self.code
        if self.message:
            out["message"] = self.message
        if self.attributes:
            out["attributes"] = render_attributes(self.attributes)
        if self.stacktrace:
            out["stacktrace"] = list(self.stacktrace)
        return out


class LinkRecord(BaseModel):
    """One entry of the flattened rendering.

    Composite links fill ``code``/``message``/``data``/``stacktrace``; the
    terminal plain error fills only ``error``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", revalidate_instances="never")

    code: str | None = None
    message: str | None = None
    data: dict[str, Any] | None = None
    stacktrace: tuple[str, ...] | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.error is not None

    def to_dict(self) -> JsonDict:
        if self.error is not None:
            return {"error": self.error}
        out: JsonDict = {}
        if self.code:
            out["code"] = self.code
        out["message"] = self.message or ""
        if self.data:
            out["data"] = render_attributes(self.data)
        if self.stacktrace:
            out["stacktrace"] = list(self.stacktrace)
        return out


EMPTY_AGGREGATE = Aggregate()


# ═════════════════════════════════════════════════════════════════════════════
# Chain Walk
# ═════════════════════════════════════════════════════════════════════════════


def walk(root: BaseException | None) -> Iterator[BaseException]:
    """Yield composite links outer to inner, then the terminal plain error if any.

    Follows ``CompositeError.cause`` only; a plain error ends the walk.
    A repeated node ends the walk too.
    """
    seen: set[int] = set()
    current = root
    while current is not None:
        if id(current) in seen:
            logger.debug("cycle in error chain at %r, stopping walk", current)
            return
        seen.add(id(current))
        yield current
        current = current.cause if isinstance(current, CompositeError) else None


def terminal_text(err: BaseException) -> str:
    """Message of a plain error ending a chain; bare exceptions fall back to their type name."""
    return str(err) or type(err).__name__


def _new_frames(stack: Stack | None, seen: set[str]) -> list[str]:
    """Formatted frames of ``stack`` not yet in ``seen`` (``seen`` is updated)."""
    if not stack:
        return []
    frames: list[str] = []
    for fid in stack:
        if (frame := format_frame(fid)) not in seen:
            seen.add(frame)
            frames.append(frame)
    return frames


def _merge_outer_wins(into: JsonDict, attributes: Mapping[str, object]) -> None:
    for k, v in attributes.items():
        if v is not None and k not in into:
            into[k] = v


def aggregate(root: BaseException | None) -> Aggregate:
    """Flatten the chain starting at ``root`` into one merged ``Aggregate``.

    Never raises. ``None`` yields an empty aggregate; a plain error yields
    just its message.
    """
    if root is None:
        return EMPTY_AGGREGATE

    messages: list[str] = []
    code: str | None = None
    attributes: JsonDict | None = None  # lazy, most links carry none
    stacktrace: list[str] = []
    seen_frames: set[str] = set()

    for link in walk(root):
        if not isinstance(link, CompositeError):
            messages.append(terminal_text(link))
            break
        if link.message:
            messages.append(link.message)
        if code is None and link.code:
            code = link.code
        if link.attributes:
            if attributes is None:
                attributes = {}
            _merge_outer_wins(attributes, link.attributes)
        stacktrace.extend(_new_frames(link.stack, seen_frames))

    return Aggregate.model_construct(
        code=code,
        message=messages[0] if len(messages) == 1 else SEPARATOR.join(messages),
        attributes=attributes or {},
        stacktrace=tuple(stacktrace) if stacktrace else _EMPTY_FRAMES,
    )


def flatten(root: BaseException | None) -> tuple[LinkRecord, ...]:
    """Walk the chain like ``aggregate`` but keep one record per link.

    Frames are deduplicated across the whole chain, so a stack reused by
    several wrapping links is listed under the outermost one only.
    """
    records: list[LinkRecord] = []
    seen_frames: set[str] = set()
    for link in walk(root):
        if not isinstance(link, CompositeError):
            records.append(LinkRecord.model_construct(error=terminal_text(link)))
            break
        data = {k: v for k, v in link.attributes.items() if v is not None}
        frames = _new_frames(link.stack, seen_frames)
        records.append(LinkRecord.model_construct(
            code=link.code,
            message=link.message,
            data=data or None,
            stacktrace=tuple(frames) if frames else None,
        ))
    return tuple(records)


def flatten_dict(root: BaseException | None) -> JsonDict:
    """Flattened rendering as ``{"errors": [...]}``."""
    return {"errors": [r.to_dict() for r in flatten(root)]}


def traces(root: BaseException | None) -> list[str]:
    """Merged, deduplicated stacktrace of the chain."""
    seen: set[str] = set()
    out: list[str] = []
    for link in walk(root):
        if isinstance(link, CompositeError):
            out.extend(_new_frames(link.stack, seen))
    return out


def render(root: BaseException | None, variant: RenderVariant | None = None) -> JsonDict:
    """Structured value for a logger, in the configured (or given) variant."""
    if (variant or get_settings().render.variant) == "flattened":
        return flatten_dict(root)
    return aggregate(root).to_dict()


# ═════════════════════════════════════════════════════════════════════════════
# Attribute Values
# ═════════════════════════════════════════════════════════════════════════════


def render_value(value: object) -> object:
    """Make an attribute value loggable: errors become their message text."""
    if isinstance(value, BaseException):
        return str(value)
    if isinstance(value, dict):
        return render_attributes(value)
    if isinstance(value, (list, tuple)):
        return [render_value(v) for v in value]
    return value


def render_attributes(attributes: Mapping[str, object] | None) -> JsonDict:
    """Render an attribute map, dropping ``None`` values."""
    if not attributes:
        return {}
    return {k: render_value(v) for k, v in attributes.items() if v is not None}
