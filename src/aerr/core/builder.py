"""Fluent builder for composite errors.

Example:
    >>> import aerr
    >>> def query(sql: str) -> None:
    ...     try:
    ...         run(sql)
    ...     except TimeoutError as e:
    ...         b = aerr.code("DB_ERROR").message("database query failed").stack_trace()
    ...         raise b.with_("query", sql).err(e)

    >>> # wrap() returns None for a None cause, so it can be used unconditionally
    >>> return aerr.message("user service failed").wrap(err)

A builder is a mutable value confined to one flow. ``err`` and ``wrap``
snapshot it into an immutable ``CompositeError``; reusing the builder later
never changes links already produced.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, overload

from aerr.foundation.config import get_settings
from aerr.foundation.errors import InvalidArgument

from .error import CompositeError
from .stack import capture_stack

if TYPE_CHECKING:
    from typing import Self

    from aerr.foundation.errors import JsonDict

    from .stack import Stack

# Frames dropped from a capture: capture_stack's caller (err/wrap) is skip=0,
# so skipping 1 starts at the caller of err/wrap.
_CALLER = 1


class Builder:
    """Mutable configuration for one composite error link."""

    __slots__ = ("_message", "_code", "_attributes", "_capture")

    def __init__(self, message: str = "", code: str | None = None) -> None:
        self._message = message
        self._code = code
        self._attributes: JsonDict = {}
        self._capture = get_settings().stack.capture_by_default

    def __repr__(self) -> str:
        return (f"Builder(message={self._message!r}, code={self._code!r}, "
                f"attributes={self._attributes!r}, capture_stack={self._capture})")

    # ─────────────────────────────────────────────────────────────────────────
    # Setters (all return self)
    # ─────────────────────────────────────────────────────────────────────────

    def code(self, code: str | None) -> Self:
        """Set the classification code."""
        self._code = code
        return self

    def message(self, message: str) -> Self:
        """Set the message."""
        self._message = message
        return self

    def with_(self, key: str, value: object) -> Self:
        """Add a key/value attribute. ``None`` or non-string keys raise InvalidArgument."""
        if key is None:
            raise InvalidArgument("key", "attribute key must not be None")
        if not isinstance(key, str):
            raise InvalidArgument("key", f"attribute key must be str, got {type(key).__name__}")
        self._attributes[key] = value
        return self

    attr = with_

    def with_attrs(self, **attributes: object) -> Self:
        """Add several attributes at once."""
        self._attributes.update(attributes)
        return self

    def stack_trace(self) -> Self:
        """Enable stack capture."""
        self._capture = True
        return self

    def without_stack(self) -> Self:
        """Disable stack capture."""
        self._capture = False
        return self

    @property
    def captures_stack(self) -> bool:
        return self._capture

    # ─────────────────────────────────────────────────────────────────────────
    # Terminators
    # ─────────────────────────────────────────────────────────────────────────

    def err(self, cause: BaseException | None = None) -> CompositeError:
        """Finalize into an immutable error with the given (optional) cause.

        Captures the caller's stack when stack capture is enabled.
        """
        stack = capture_stack(_CALLER) if self._capture else None
        return self._build(cause, stack)

    finalize = err

    @overload
    def wrap(self, cause: None) -> None: ...
    @overload
    def wrap(self, cause: BaseException) -> CompositeError: ...

    def wrap(self, cause: BaseException | None) -> CompositeError | None:
        """Wrap ``cause``, or return None when there is nothing to wrap.

        When ``cause`` is a composite error that already carries a stack, that
        stack is reused by reference instead of capturing a new one, so the
        rendered stack stays the one closest to the original failure.
        """
        if cause is None:
            return None
        if isinstance(cause, CompositeError) and cause.stack:
            stack = cause.stack
        else:
            stack = capture_stack(_CALLER) if self._capture else None
        return self._build(cause, stack)

    def _build(self, cause: BaseException | None, stack: Stack | None) -> CompositeError:
        # CompositeError copies the attribute dict, so later builder reuse cannot leak in
        return CompositeError(self._message, code=self._code, attributes=self._attributes,
                              stack=stack, cause=cause)


def code(code: str) -> Builder:
    """Start building an error with a classification code."""
    return Builder(code=code)


def message(message: str) -> Builder:
    """Start building an error with a message."""
    return Builder(message=message)
