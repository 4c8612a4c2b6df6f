"""Tests for environment-driven configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

import aerr
from aerr.foundation.config import AerrSettings, get_settings


def test_defaults() -> None:
    """Stack capture off, depth 32, stdlib frames skipped, merged rendering."""
    s = get_settings()
    assert s.stack.max_depth == 32
    assert s.stack.skip_stdlib is True
    assert s.stack.capture_by_default is False
    assert s.render.variant == "merged"
    assert s.logging.level == "INFO"


def test_settings_are_cached() -> None:
    """get_settings returns the same instance until the cache is cleared."""
    assert get_settings() is get_settings()
    first = get_settings()
    aerr.clear_settings_cache()
    assert get_settings() is not first


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """AERR_* variables override defaults."""
    monkeypatch.setenv("AERR_STACK_MAX_DEPTH", "4")
    monkeypatch.setenv("AERR_RENDER_VARIANT", "flattened")
    monkeypatch.setenv("AERR_LOG_LEVEL", "DEBUG")
    s = AerrSettings()
    assert (s.stack.max_depth, s.render.variant, s.logging.level) == (4, "flattened", "DEBUG")


def test_invalid_values_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    """Out-of-range depth and unknown variants fail validation."""
    monkeypatch.setenv("AERR_STACK_MAX_DEPTH", "0")
    with pytest.raises(ValidationError):
        AerrSettings()
    monkeypatch.setenv("AERR_STACK_MAX_DEPTH", "8")
    monkeypatch.setenv("AERR_RENDER_VARIANT", "nested")
    with pytest.raises(ValidationError):
        AerrSettings()


def test_max_depth_limits_capture(monkeypatch: pytest.MonkeyPatch) -> None:
    """Captured stacks never exceed AERR_STACK_MAX_DEPTH frames."""
    monkeypatch.setenv("AERR_STACK_MAX_DEPTH", "2")
    aerr.clear_settings_cache()

    err = aerr.message("m").stack_trace().err()
    assert 1 <= len(err.stack) <= 2
