"""Shared fixtures: fresh settings and logging state per test."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from aerr import clear_settings_cache
from aerr.observability import CaptureRenderer, reset_logging, set_renderer


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop AERR_* env vars and cached settings around each test."""
    for key in [k for k in os.environ if k.startswith("AERR_")]:
        monkeypatch.delenv(key)
    clear_settings_cache()
    reset_logging()
    yield
    clear_settings_cache()
    reset_logging()


@pytest.fixture
def captured() -> CaptureRenderer:
    """Renderer collecting structured log entries."""
    renderer = CaptureRenderer()
    set_renderer(renderer)
    return renderer
