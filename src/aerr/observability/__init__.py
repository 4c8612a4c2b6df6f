"""Structured logging: bound context, console / JSON renderers, automatic error rendering."""

from .logging import (
    BoundLogger,
    CaptureRenderer,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    LogValuer,
    NoOpRenderer,
    configure_logging,
    get_logger,
    log_context,
    resolve_context,
    resolve_value,
    reset_logging,
    set_renderer,
)

__all__ = [
    "BoundLogger",
    "CaptureRenderer",
    "ConsoleRenderer",
    "JsonRenderer",
    "LogEntry",
    "LogRenderer",
    "LogValuer",
    "NoOpRenderer",
    "configure_logging",
    "get_logger",
    "log_context",
    "resolve_context",
    "resolve_value",
    "reset_logging",
    "set_renderer",
]
