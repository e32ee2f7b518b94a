"""Exceptions raised by the scheduling core.

A conflict is not an error: it is reported through ``ConflictResult``.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for scheduling-core failures."""


class InvalidIntervalError(SchedulingError):
    """Raised when an interval does not satisfy ``start < end``."""

    def __init__(self, start, end) -> None:
        self.start = start
        self.end = end
        super().__init__(f"interval end ({end}) must be after start ({start})")


class DataAccessError(SchedulingError):
    """Raised by a reservation reader when the underlying store fails."""
