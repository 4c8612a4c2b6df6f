"""Environment-based configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults. Supports .env files.

Example:
    >>> from aerr.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.stack.max_depth
    32
    >>> settings.render.variant
    'merged'

    # Or with environment variables:
    # AERR_STACK_MAX_DEPTH=64
    # AERR_STACK_CAPTURE_BY_DEFAULT=true
    # AERR_RENDER_VARIANT=flattened
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RenderVariant = Literal["merged", "flattened"]


class StackSettings(BaseSettings):
    """Stack capture configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AERR_STACK_",
        extra="ignore",
    )

    max_depth: Annotated[int, Field(ge=1, le=256)] = 32
    skip_stdlib: bool = Field(default=True, description="Drop frames from the interpreter's standard library")
    capture_by_default: bool = Field(default=False, description="Initial stack-capture flag of new builders")


class RenderSettings(BaseSettings):
    """How composite errors present themselves to structured loggers."""

    model_config = SettingsConfigDict(
        env_prefix="AERR_RENDER_",
        extra="ignore",
    )

    variant: RenderVariant = "merged"

    @field_validator("variant", mode="before")
    @classmethod
    def _normalize_variant(cls, v: str) -> str:
        """Normalize variant name to lowercase."""
        return v.strip().lower() if isinstance(v, str) else v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AERR_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json"] = "console"


class AerrSettings(BaseSettings):
    """Root settings for aerr.

    Loads configuration from environment variables with the AERR_ prefix.
    Sub-settings read their own prefixes (AERR_STACK_, AERR_RENDER_, AERR_LOG_).
    """

    model_config = SettingsConfigDict(
        env_prefix="AERR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    stack: StackSettings = Field(default_factory=StackSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> AerrSettings:
    """Get cached settings instance. Call clear_settings_cache() to reload."""
    return AerrSettings()


def clear_settings_cache() -> None:
    """Clear settings cache to force reload from environment."""
    get_settings.cache_clear()
