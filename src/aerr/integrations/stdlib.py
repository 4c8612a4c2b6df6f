"""Standard-library ``logging`` integration.

Composite errors reach a stdlib log record two ways, and both are rendered
as their aggregated chain:

    >>> import logging, aerr
    >>> from aerr.integrations import stdlib
    >>> stdlib.install()  # once, at startup
    >>> log = logging.getLogger("api")
    >>> log.error("request failed", extra={"err": err})   # as an extra field
    >>> try:
    ...     handle()
    ... except aerr.CompositeError:
    ...     log.exception("request failed")               # as exc_info

Nothing is patched on import: ``install`` must be called explicitly. It puts a
``JsonFormatter`` on the given handler (or on every root handler) and
``uninstall`` puts the previous formatters back.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Callable

import orjson

from aerr.core import CompositeError, traces
from aerr.observability.logging import LogValuer

if TYPE_CHECKING:
    from aerr.foundation.config import RenderVariant
    from aerr.foundation.errors import JsonDict

ErrorMarshaler = Callable[[BaseException], object]
StackMarshaler = Callable[[BaseException], "list[str] | None"]

logger = logging.getLogger("aerr.integrations.stdlib")

# Attributes every LogRecord carries; anything else on a record came from extra=
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


# ─────────────────────────────────────────────────────────────────────────────
# Marshal Hooks
# ─────────────────────────────────────────────────────────────────────────────


def error_marshaler(err: BaseException, variant: RenderVariant | None = None) -> object:
    """Composite errors become their rendered chain, other errors their message."""
    if isinstance(err, CompositeError):
        return err.log_value(variant)
    return str(err)


def stack_marshaler(err: BaseException) -> list[str] | None:
    """Merged stacktrace of a composite error chain, or None."""
    if isinstance(err, CompositeError):
        return traces(err) or None
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Formatter
# ─────────────────────────────────────────────────────────────────────────────


class JsonFormatter(logging.Formatter):
    """Render log records as JSON lines, expanding composite errors.

    Args:
        error_key: Field name used for an error taken from ``exc_info``
        variant: ``merged`` or ``flattened`` (defaults to AERR_RENDER_VARIANT)
        marshal_error: Hook converting an error to a loggable value
        marshal_stack: Hook producing a stacktrace for ``stack_info``-style output;
            used for records logged with ``extra={"stack": True}``
    """

    def __init__(
        self,
        *,
        error_key: str = "err",
        variant: RenderVariant | None = None,
        marshal_error: ErrorMarshaler | None = None,
        marshal_stack: StackMarshaler | None = None,
    ) -> None:
        super().__init__()
        self.error_key = error_key
        self.variant = variant
        self.marshal_error = marshal_error or (lambda e: error_marshaler(e, self.variant))
        self.marshal_stack = marshal_stack or stack_marshaler

    def _value(self, value: object) -> object:
        if isinstance(value, BaseException):
            return self.marshal_error(value)
        if isinstance(value, LogValuer):
            return value.log_value()
        return value

    def to_dict(self, record: logging.LogRecord) -> JsonDict:
        data: JsonDict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        want_stack = False
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            if key == "stack":
                want_stack = bool(value)
                continue
            data[key] = self._value(value)

        if record.exc_info and (exc := record.exc_info[1]) is not None:
            data[self.error_key] = self.marshal_error(exc)
            if not isinstance(exc, CompositeError):
                data["exc_info"] = self.formatException(record.exc_info)
            if want_stack and (frames := self.marshal_stack(exc)):
                data["stack"] = frames
        if record.stack_info:
            data["stack_info"] = record.stack_info
        return data

    def format(self, record: logging.LogRecord) -> str:
        return orjson.dumps(self.to_dict(record), default=str, option=orjson.OPT_NON_STR_KEYS).decode()


# ─────────────────────────────────────────────────────────────────────────────
# Registration
# ─────────────────────────────────────────────────────────────────────────────


_lock = threading.Lock()
_previous: dict[logging.Handler, logging.Formatter | None] = {}


def install(
    handler: logging.Handler | None = None,
    *,
    error_key: str = "err",
    variant: RenderVariant | None = None,
) -> list[logging.Handler]:
    """Put a ``JsonFormatter`` on ``handler`` (or on every root-logger handler).

    Returns the handlers that were configured. Installing twice on the same
    handler keeps the original formatter for ``uninstall``.
    """
    handlers = [handler] if handler is not None else list(logging.getLogger().handlers)
    with _lock:
        for h in handlers:
            _previous.setdefault(h, h.formatter)
            h.setFormatter(JsonFormatter(error_key=error_key, variant=variant))
    logger.debug("installed JsonFormatter on %d handler(s)", len(handlers))
    return handlers


def uninstall(handler: logging.Handler | None = None) -> None:
    """Restore the formatter(s) replaced by ``install``."""
    with _lock:
        targets = [handler] if handler is not None else list(_previous)
        for h in targets:
            if h in _previous:
                h.setFormatter(_previous.pop(h))


def is_installed(handler: logging.Handler) -> bool:
    return handler in _previous
