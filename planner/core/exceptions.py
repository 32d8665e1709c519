"""Application-specific exceptions for the calendar planner."""

from __future__ import annotations

from typing import Any


class PlannerError(Exception):
    """Base exception for all planner errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidSeriesDefinition(PlannerError):
    """A series cannot be expanded: bad interval, missing end, mixed tzinfo,
    or a cadence that would exceed the iteration ceiling."""


class InvalidOccurrence(PlannerError):
    """A per-occurrence edit does not target a natural date of its series."""


class SeriesNotFound(PlannerError):
    def __init__(self, series_id: int) -> None:
        super().__init__(f"Event {series_id} not found", {"series_id": series_id})
        self.series_id = series_id


class InvalidDateTime(PlannerError):
    """A date-time string supplied at the boundary could not be parsed."""


class StorageError(PlannerError):
    """The CSV event file could not be read or contains malformed rows."""


class BackupError(PlannerError):
    """Backup or restore could not be carried out."""
