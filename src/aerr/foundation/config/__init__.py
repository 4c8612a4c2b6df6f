"""Configuration management using pydantic-settings."""

from .settings import (
    AerrSettings,
    LoggingSettings,
    RenderSettings,
    RenderVariant,
    StackSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AerrSettings",
    "LoggingSettings",
    "RenderSettings",
    "RenderVariant",
    "StackSettings",
    "clear_settings_cache",
    "get_settings",
]
