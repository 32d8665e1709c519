"""In-memory event store: owns the canonical list of series and their exceptions."""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from threading import RLock

from planner.core.exceptions import InvalidOccurrence, SeriesNotFound
from planner.domain.models import EventException, EventSeries, SeriesCreate, SeriesUpdate
from planner.services.recurrence import (
    ensure_expandable,
    get_occurrences,
    is_natural_occurrence,
)

logger = logging.getLogger(__name__)

_CLEARABLE_FIELDS = {"recurrence_end", "max_occurrences"}


class SeriesRepository:
    """Dict-backed store for EventSeries instances, keyed by integer id.

    Ids are handed out from a counter that never moves backwards, so an id is
    not reused while the process runs. Reads return snapshot lists; all
    mutation happens under a single lock.
    """

    def __init__(self) -> None:
        self._store: dict[int, EventSeries] = {}
        self._next_id = 1
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Series
    # ------------------------------------------------------------------

    def add(self, data: SeriesCreate | EventSeries) -> EventSeries:
        """Store a new series under a fresh id and return it."""
        with self._lock:
            payload = data.model_dump(exclude={"id"})
            series = EventSeries(id=self._next_id, **payload)
            ensure_expandable(series)
            self._store[series.id] = series
            self._next_id += 1
            return series

    def replace_all(self, series_list: list[EventSeries]) -> int:
        """Swap the whole store for *series_list*, keeping their ids.

        A series whose id is already taken by an earlier entry is kept under a
        fresh id. Returns the number of series that were renumbered.
        """
        with self._lock:
            highest = max((series.id for series in series_list), default=0)
            next_id = max(self._next_id, highest + 1)
            store: dict[int, EventSeries] = {}
            renumbered = 0
            for series in series_list:
                if series.id in store:
                    logger.warning(
                        "Duplicate event id %d for '%s', renumbered to %d",
                        series.id,
                        series.title,
                        next_id,
                    )
                    series = series.model_copy(update={"id": next_id})
                    next_id += 1
                    renumbered += 1
                store[series.id] = series
            self._store = store
            self._next_id = next_id
            return renumbered

    def get(self, series_id: int) -> EventSeries | None:
        return self._store.get(series_id)

    def require(self, series_id: int) -> EventSeries:
        series = self._store.get(series_id)
        if series is None:
            raise SeriesNotFound(series_id)
        return series

    def list_all(self) -> list[EventSeries]:
        with self._lock:
            return list(self._store.values())

    def preview_update(self, series_id: int, changes: SeriesUpdate) -> EventSeries:
        """Return the series as it would look after *changes*, without storing it.

        Raises ``pydantic.ValidationError`` if the merged definition is invalid,
        or ``InvalidSeriesDefinition`` if it expands past the iteration ceiling.
        """
        current = self.require(series_id)
        merged = current.model_dump()
        for field, value in changes.model_dump(exclude_unset=True).items():
            # only the recurrence bounds can be cleared explicitly
            if value is None and field not in _CLEARABLE_FIELDS:
                continue
            merged[field] = value
        updated = EventSeries.model_validate(merged)
        ensure_expandable(updated)
        return updated

    def update(self, series_id: int, changes: SeriesUpdate) -> EventSeries:
        with self._lock:
            updated = self.preview_update(series_id, changes)
            self._store[series_id] = updated
            return updated

    def delete(self, series_id: int) -> EventSeries:
        with self._lock:
            series = self.require(series_id)
            del self._store[series_id]
            return series

    # ------------------------------------------------------------------
    # Single occurrences
    # ------------------------------------------------------------------

    def delete_occurrence(
        self, series_id: int, original_date: datetime
    ) -> EventException:
        """Suppress the occurrence of *series_id* that naturally starts at *original_date*."""
        exception = EventException(original_date=original_date, is_deleted=True)
        return self._override(series_id, exception)

    def move_occurrence(
        self, series_id: int, original_date: datetime, new_date: datetime
    ) -> EventException:
        """Shift one occurrence to *new_date*, keeping the series duration."""
        exception = EventException(original_date=original_date, new_date=new_date)
        return self._override(series_id, exception)

    def _override(self, series_id: int, exception: EventException) -> EventException:
        with self._lock:
            series = self.require(series_id)
            if not series.is_recurring:
                raise InvalidOccurrence(
                    "Only recurring events have individual occurrences",
                    {"series_id": series_id},
                )
            if not is_natural_occurrence(series, exception.original_date):
                raise InvalidOccurrence(
                    f"{exception.original_date.isoformat()} is not an occurrence "
                    f"of event {series_id}",
                    {
                        "series_id": series_id,
                        "original_date": exception.original_date.isoformat(),
                    },
                )

            # keep one record per natural date: a later edit replaces the earlier one
            series.exceptions = [
                existing
                for existing in series.exceptions
                if existing.original_date != exception.original_date
            ]
            series.exceptions.append(exception)
            return exception

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_by_title(self, keyword: str | None) -> list[EventSeries]:
        if not keyword:
            return []
        needle = keyword.lower()
        return [s for s in self.list_all() if needle in s.title.lower()]

    def search_by_description(self, keyword: str | None) -> list[EventSeries]:
        if not keyword:
            return []
        needle = keyword.lower()
        return [s for s in self.list_all() if needle in s.description.lower()]

    def search_by_date(self, day: date) -> list[EventSeries]:
        """Series with at least one occurrence starting on *day*."""
        view_start = datetime.combine(day, time.min)
        view_end = datetime.combine(day, time(23, 59, 59))
        return [
            s for s in self.list_all() if get_occurrences(s, view_start, view_end)
        ]
