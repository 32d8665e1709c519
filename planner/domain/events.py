"""Domain events emitted when the calendar changes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class SeriesCreated(BaseModel):
    """Fired when a new series is added to the store."""

    series_id: int


class SeriesUpdated(BaseModel):
    series_id: int


class SeriesDeleted(BaseModel):
    series_id: int


class OccurrenceOverridden(BaseModel):
    """Fired when one occurrence of a series is deleted or moved."""

    series_id: int
    original_date: datetime
    new_date: datetime | None = None
    is_deleted: bool = False


class ConflictDetected(BaseModel):
    """Fired when a change is committed despite overlapping occurrences."""

    series_id: int
    conflicting_series_ids: list[int]
