"""Logging-framework integrations. Each must be installed explicitly."""

from . import stdlib

__all__ = ["stdlib"]
