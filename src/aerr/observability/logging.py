"""Structured logging that renders composite errors automatically.

Any keyword value implementing ``LogValuer`` (``log_value()``) is resolved
before rendering, so passing a composite error is enough to get its whole
chain as one nested object:

    >>> from aerr.observability import configure_logging, get_logger
    >>> configure_logging(format="json")
    >>> log = get_logger("api")
    >>> log.error("request failed", err=aerr.code("DB_ERROR").message("query failed").err(cause))
    # => {"timestamp": ..., "level": "error", "event": "request failed", "logger": "api",
    #     "err": {"code": "DB_ERROR", "message": "query failed: connection timeout"}}

Plain exceptions render as their message text.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, TextIO, runtime_checkable

import orjson

from aerr.foundation.config import get_settings

if TYPE_CHECKING:
    from types import TracebackType

    from aerr.foundation.errors import JsonDict, JsonValue

# Context var for scoped context (persists across async calls)
_log_context: ContextVar[JsonDict] = ContextVar("aerr_log_context", default={})


# ─────────────────────────────────────────────────────────────────────────────
# Log Values
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogValuer(Protocol):
    """Value that knows its own structured representation."""

    def log_value(self) -> JsonValue: ...


def resolve_value(value: object) -> object:
    """Resolve LogValuers and exceptions to loggable values."""
    if isinstance(value, LogValuer):
        return value.log_value()
    if isinstance(value, BaseException):
        return str(value)
    return value


def resolve_context(context: JsonDict) -> JsonDict:
    return {k: resolve_value(v) for k, v in context.items()}


# ─────────────────────────────────────────────────────────────────────────────
# Core Logger
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class BoundLogger:
    """Structured logger with bound context. Immutable - bind() returns a new logger.

    Example:
        >>> log = BoundLogger(context={"service": "users"})
        >>> log.error("lookup failed", err=err, user_id=42)
        # => 10:30:45.123 [error] lookup failed err=[DB_ERROR] query failed: timeout service="users" user_id=42
    """

    context: JsonDict = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int = logging.DEBUG

    def bind(self, **kw: object) -> BoundLogger:
        """Create new logger with additional bound context."""
        return BoundLogger(context={**self.context, **kw}, _renderer=self._renderer, _level=self._level)

    def unbind(self, *keys: str) -> BoundLogger:
        """Create new logger without specified keys."""
        return BoundLogger(context={k: v for k, v in self.context.items() if k not in keys},
                           _renderer=self._renderer, _level=self._level)

    def _log(self, level: int, event: str, **kw: object) -> None:
        if level < self._level:
            return
        # Merge contexts: scoped -> bound -> call-site
        merged = resolve_context({**_log_context.get(), **self.context, **kw})
        (self._renderer or _get_renderer()).render(LogEntry(time.time(), _level_name(level), event, merged))

    def debug(self, event: str, **kw: object) -> None: self._log(logging.DEBUG, event, **kw)
    def info(self, event: str, **kw: object) -> None: self._log(logging.INFO, event, **kw)
    def warning(self, event: str, **kw: object) -> None: self._log(logging.WARNING, event, **kw)
    def error(self, event: str, **kw: object) -> None: self._log(logging.ERROR, event, **kw)


@dataclass(slots=True)
class LogEntry:
    """One rendered log entry with all context resolved."""

    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def ts_iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def ts_human(self) -> str:
        """Human-readable timestamp (HH:MM:SS.mmm)."""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]

    def as_dict(self) -> JsonDict:
        return {"timestamp": self.ts_iso, "level": self.level, "event": self.event, **self.context}


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class LogRenderer(Protocol):
    """Protocol for log output renderers."""

    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class ConsoleRenderer:
    """Human-readable console output. Format: timestamp [level] event key=value ...

    Nested error values (dicts with a ``stacktrace``) are printed below the line.
    """

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None  # None = auto-detect
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            self.colors = getattr(self.output, "isatty", lambda: False)()

    def render(self, entry: LogEntry) -> None:
        c = _COLORS if self.colors else _NO_COLORS
        parts = [f"{c['dim']}{entry.ts_human}{c['reset']}"] if self.show_timestamp else []
        level_color = _LEVEL_COLORS.get(entry.level, c["dim"]) if self.colors else ""
        parts += [f"{level_color}[{entry.level}]{c['reset']}",
                  f"{c['bold']}{entry.event}{c['reset']}"]
        parts += [f"{c['cyan']}{k}{c['reset']}={_format_value(v, c)}" for k, v in sorted(entry.context.items())]
        print(" ".join(parts), file=self.output)
        for k, v in sorted(entry.context.items()):
            if isinstance(v, dict) and (frames := v.get("stacktrace")):
                print(f"{c['red']}{k} stacktrace:\n" + "\n".join(f"  {f}" for f in frames) + c["reset"],
                      file=self.output)


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines output for log aggregation (Elasticsearch, Loki, Datadog, etc.)."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        print(orjson.dumps(entry.as_dict(), default=str, option=orjson.OPT_NON_STR_KEYS).decode(),
              file=self.output)


@dataclass(slots=True)
class CaptureRenderer:
    """Keeps entries in memory (tests, assertions on emitted records)."""

    entries: list[LogEntry] = field(default_factory=list)

    def render(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    def clear(self) -> None:
        self.entries.clear()


@dataclass(slots=True)
class NoOpRenderer:
    """Silent renderer."""

    def render(self, entry: LogEntry) -> None:
        pass


# ─────────────────────────────────────────────────────────────────────────────
# Global Configuration
# ─────────────────────────────────────────────────────────────────────────────


# Process-wide: a renderer configured on one thread is used by loggers on every thread
_config_lock = threading.Lock()
_renderer: LogRenderer | None = None
_default_level: int | None = None


def configure_logging(
    format: str | None = None,  # noqa: A002 - shadows builtin but matches stdlib
    level: str | None = None,
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Configure structured logging. Format: "console" (human), "json" (machine), "none".

    Unset arguments fall back to AERR_LOG_FORMAT / AERR_LOG_LEVEL.
    """
    global _renderer, _default_level
    settings = get_settings().logging
    match format or settings.format:
        case "console": renderer: LogRenderer = ConsoleRenderer(output=output or sys.stderr, colors=colors)
        case "json": renderer = JsonRenderer(output=output or sys.stdout)
        case "none": renderer = NoOpRenderer()
        case other: raise ValueError(f"Unknown format: {other}. Use 'console', 'json', or 'none'")
    with _config_lock:
        _default_level = getattr(logging, (level or settings.level).upper(), logging.INFO)
        _renderer = renderer
    return renderer


def set_renderer(renderer: LogRenderer | None) -> None:
    """Install a renderer directly (None restores the lazily created default)."""
    global _renderer
    with _config_lock:
        _renderer = renderer


def reset_logging() -> None:
    """Drop configured renderer and level (next logger uses settings and a default renderer)."""
    global _renderer, _default_level
    with _config_lock:
        _renderer = None
        _default_level = None


def get_logger(name: str | None = None, **initial_context: object) -> BoundLogger:
    """Get a structured logger with optional initial context. Name is added to context as 'logger'."""
    ctx = {**initial_context, **({"logger": name} if name else {})}
    level = _default_level
    if level is None:
        level = getattr(logging, get_settings().logging.level, logging.INFO)
    return BoundLogger(context=ctx, _level=level)


def _get_renderer() -> LogRenderer:
    """Get configured renderer or create default."""
    global _renderer
    if (renderer := _renderer) is None:
        with _config_lock:
            if (renderer := _renderer) is None:
                _renderer = renderer = ConsoleRenderer()
    return renderer


class log_context:
    """Context manager adding key-value pairs to all log entries within the scope."""

    __slots__ = ("_ctx", "_token")

    def __init__(self, **kw: object) -> None:
        self._ctx: JsonDict = dict(kw)
        self._token: object | None = None

    def __enter__(self) -> log_context:
        self._token = _log_context.set({**_log_context.get(), **self._ctx})
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None,
                 exc_tb: TracebackType | None) -> None:
        if self._token is not None:
            _log_context.reset(self._token)  # type: ignore[arg-type]


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


_COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}

_NO_COLORS = {k: "" for k in _COLORS}

_LEVEL_COLORS = {
    "debug": _COLORS["dim"],
    "info": _COLORS["green"],
    "warning": _COLORS["yellow"],
    "error": _COLORS["red"],
}


def _level_name(level: int) -> str:
    return logging.getLevelName(level).lower()


def _format_value(v: object, c: dict[str, str]) -> str:
    """Format a value for console output."""
    if isinstance(v, str):
        return f'{c["yellow"]}"{v}"{c["reset"]}'
    if isinstance(v, bool):
        return f'{c["blue"]}{str(v).lower()}{c["reset"]}'
    if isinstance(v, (int, float)):
        return f'{c["blue"]}{v}{c["reset"]}'
    if isinstance(v, dict):
        # error values: show code and combined message inline
        if "message" in v or "code" in v:
            code = f"[{v['code']}] " if v.get("code") else ""
            return f'{c["red"]}{code}{v.get("message", "")}{c["reset"]}'
        return f'{c["dim"]}{{{len(v)} items}}{c["reset"]}'
    if isinstance(v, (list, tuple)):
        return f'{c["dim"]}[{len(v)} items]{c["reset"]}'
    return f'{c["white"]}{v!r}{c["reset"]}'
