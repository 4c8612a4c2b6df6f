"""One link of an error chain, plus chain interop helpers.

``CompositeError`` is immutable once built: its attributes live in a private
copy exposed through a read-only view, and its stack is a tuple that may be
shared with the link it wraps. Links are produced by ``Builder.err`` and
``Builder.wrap`` (see ``aerr.core.builder``), never mutated afterwards.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, TypeVar

from aerr.foundation.errors import EMPTY_ATTRS

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from aerr.foundation.config import RenderVariant
    from aerr.foundation.errors import JsonDict

    from .stack import Stack

E = TypeVar("E", bound=BaseException)

logger = logging.getLogger("aerr.chain")

_EMPTY_VIEW: Mapping[str, object] = MappingProxyType(EMPTY_ATTRS)


class CompositeError(Exception):
    """Error carrying a message, an optional code, attributes, a stack and a cause.

    ``str(err)`` is this link's own message. Use ``aerr.aggregate`` (or just
    log the error) to see the whole chain.
    """

    __slots__ = ("_message", "_code", "_attributes", "_stack")

    def __init__(
        self,
        message: str = "",
        *,
        code: str | None = None,
        attributes: Mapping[str, object] | None = None,
        stack: Stack | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self._message = message
        self._code = code or None
        self._attributes: Mapping[str, object] = (
            MappingProxyType(dict(attributes)) if attributes else _EMPTY_VIEW
        )
        self._stack = stack or None
        # __cause__ is the one cause slot, so `raise link from exc` re-links it
        self.__cause__ = cause

    # ─────────────────────────────────────────────────────────────────────────
    # Accessors
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def message(self) -> str:
        """This link's message (not the chain)."""
        return self._message

    @property
    def code(self) -> str | None:
        return self._code

    @property
    def attributes(self) -> Mapping[str, object]:
        """Read-only view of this link's attributes."""
        return self._attributes

    @property
    def stack(self) -> Stack | None:
        """Captured frame ids, possibly shared with a wrapped link."""
        return self._stack

    @property
    def cause(self) -> BaseException | None:
        """Wrapped error (same object as ``__cause__``)."""
        return self.__cause__

    def __str__(self) -> str:
        return self._message

    def __repr__(self) -> str:
        code = f" code={self._code!r}" if self._code else ""
        cause = f" cause={type(self.__cause__).__name__}" if self.__cause__ is not None else ""
        return f"CompositeError({self._message!r}{code}{cause})"

    def __reduce__(self) -> tuple[object, ...]:
        # slot fields are not part of BaseException state; rebuild through __init__
        return _rebuild, (type(self), self._message, self._code, dict(self._attributes), self._stack,
                          self.__cause__)

    # ─────────────────────────────────────────────────────────────────────────
    # Structured logging
    # ─────────────────────────────────────────────────────────────────────────

    def log_value(self, variant: RenderVariant | None = None) -> JsonDict:
        """Render the whole chain as one structured value.

        Structured loggers call this automatically (see ``LogValuer``).
        ``variant`` overrides ``AERR_RENDER_VARIANT``.
        """
        from .aggregate import render
        return render(self, variant)

    def traces(self) -> list[str]:
        """Merged, deduplicated stacktrace of the chain."""
        from .aggregate import traces
        return traces(self)


def _rebuild(
    cls: type[CompositeError],
    message: str,
    code: str | None,
    attributes: dict[str, object],
    stack: Stack | None,
    cause: BaseException | None,
) -> CompositeError:
    return cls(message, code=code, attributes=attributes, stack=stack, cause=cause)


# ═════════════════════════════════════════════════════════════════════════════
# Accessors for arbitrary errors
# ═════════════════════════════════════════════════════════════════════════════


def as_aerr(err: BaseException | None) -> CompositeError | None:
    """Return ``err`` if it is a composite error, else None."""
    return err if isinstance(err, CompositeError) else None


def get_message(err: BaseException | None) -> str:
    return err.message if isinstance(err, CompositeError) else ""


def get_code(err: BaseException | None) -> str | None:
    return err.code if isinstance(err, CompositeError) else None


def get_attributes(err: BaseException | None) -> Mapping[str, object]:
    return err.attributes if isinstance(err, CompositeError) else _EMPTY_VIEW


def get_stack(err: BaseException | None) -> Stack | None:
    return err.stack if isinstance(err, CompositeError) else None


def get_cause(err: BaseException | None) -> BaseException | None:
    """Cause of a composite error; None for anything else."""
    return err.cause if isinstance(err, CompositeError) else None


# ═════════════════════════════════════════════════════════════════════════════
# Chain interop
# ═════════════════════════════════════════════════════════════════════════════


def unwrap(err: BaseException | None) -> BaseException | None:
    """Immediate cause of any exception (``__cause__``)."""
    return err.__cause__ if err is not None else None


def chain(err: BaseException | None) -> Iterator[BaseException]:
    """Iterate ``err`` and its causes, outermost first. Stops on a cycle."""
    seen: set[int] = set()
    while err is not None:
        if id(err) in seen:
            logger.debug("error chain cycle detected at %r", err)
            return
        seen.add(id(err))
        yield err
        err = err.__cause__


def is_in_chain(err: BaseException | None, target: BaseException) -> bool:
    """True if ``err`` or any of its causes is (or equals) ``target``."""
    return any(e is target or e == target for e in chain(err))


def as_type(err: BaseException | None, cls: type[E]) -> E | None:
    """First error in the chain that is an instance of ``cls``."""
    return next((e for e in chain(err) if isinstance(e, cls)), None)
