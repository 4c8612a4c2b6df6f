"""Errors raised by aerr itself.

aerr exists to carry application errors, so the taxonomy is tiny: a base
class and the one contract violation a caller can commit while configuring
a builder.
"""

from __future__ import annotations


class AerrError(Exception):
    """Base class for errors raised by the library (never for carried errors)."""


class InvalidArgument(AerrError, ValueError):
    """Contract violation at configuration time, e.g. a ``None`` attribute key."""

    def __init__(self, argument: str, reason: str) -> None:
        self.argument = argument
        super().__init__(f"invalid argument {argument!r}: {reason}")
