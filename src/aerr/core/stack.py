"""Stack capture and canonical frame formatting.

A captured stack is a tuple of opaque ``FrameId`` values. Tuples are
immutable, so a stack captured by an inner link can be shared by reference
with every outer link that wraps it.

Frames are resolved to ``(file, function, line)`` only when rendered, and the
formatted ``"<file>.(<function>):<line>"`` string is memoized per frame id.
"""

from __future__ import annotations

import sys
import sysconfig
from functools import lru_cache
from typing import TYPE_CHECKING, NamedTuple

from aerr.foundation.config import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import CodeType, FrameType


class FrameId(NamedTuple):
    """Opaque identifier of one captured call-site."""

    code: CodeType
    lineno: int
    module: str


class ResolvedFrame(NamedTuple):
    """A frame id resolved to its source location."""

    file: str
    function: str
    line: int


Stack = tuple[FrameId, ...]

EMPTY_STACK: Stack = ()

# Frames below these prefixes belong to the interpreter, not the application.
# site-packages may live under the stdlib dir, so third-party paths are carved back out.
_STDLIB_PREFIXES: tuple[str, ...] = tuple(
    {p for k in ("stdlib", "platstdlib") if (p := sysconfig.get_paths().get(k))}
)
_THIRD_PARTY_PREFIXES: tuple[str, ...] = tuple(
    {p for k in ("purelib", "platlib") if (p := sysconfig.get_paths().get(k))}
)


def _is_stdlib(filename: str) -> bool:
    if filename.startswith("<"):  # <frozen ...>, <string>
        return filename.startswith("<frozen")
    return filename.startswith(_STDLIB_PREFIXES) and not filename.startswith(_THIRD_PARTY_PREFIXES)


def capture_stack(skip: int = 0, *, max_depth: int | None = None, skip_stdlib: bool | None = None) -> Stack:
    """Capture the current call stack, innermost frame first.

    Args:
        skip: Number of frames above the caller of ``capture_stack`` to drop.
            ``skip=0`` starts at the caller itself.
        max_depth: Max frames walked (defaults to ``AERR_STACK_MAX_DEPTH``)
        skip_stdlib: Drop standard-library frames (defaults to ``AERR_STACK_SKIP_STDLIB``)
    """
    settings = get_settings().stack
    depth = settings.max_depth if max_depth is None else max_depth
    no_std = settings.skip_stdlib if skip_stdlib is None else skip_stdlib
    try:
        frame: FrameType | None = sys._getframe(skip + 1)
    except ValueError:  # skip is deeper than the stack
        return EMPTY_STACK

    frames: list[FrameId] = []
    while frame is not None and depth > 0:
        code = frame.f_code
        if not (no_std and _is_stdlib(code.co_filename)):
            frames.append(FrameId(code, frame.f_lineno, frame.f_globals.get("__name__", "")))
        frame, depth = frame.f_back, depth - 1
    return tuple(frames)


def resolve_frame(fid: FrameId) -> ResolvedFrame:
    """Resolve an opaque frame id to ``(file, function, line)``."""
    code = fid.code
    function = f"{fid.module}.{code.co_qualname}" if fid.module else code.co_qualname
    return ResolvedFrame(code.co_filename, function, fid.lineno)


@lru_cache(maxsize=2048)
def format_frame(fid: FrameId) -> str:
    """Format one frame as ``<file>.(<function>):<line>``."""
    file, function, line = resolve_frame(fid)
    return f"{file}.({function}):{line}"


def format_stack(stack: Iterable[FrameId] | None) -> list[str]:
    """Format every frame of a stack, innermost first."""
    return [format_frame(fid) for fid in stack] if stack else []
