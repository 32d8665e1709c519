"""Domain-event handlers: persistence and conflict logging, wired at startup."""

from __future__ import annotations

import logging

from planner.domain.bus import EventBus
from planner.domain.events import (
    ConflictDetected,
    OccurrenceOverridden,
    SeriesCreated,
    SeriesDeleted,
    SeriesUpdated,
)
from planner.repos.csv_store import CsvSeriesStore
from planner.repos.memory import SeriesRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Subscribes the store's change handlers to the bus.

    With no CSV store configured the calendar lives in memory only and the
    persistence handlers just log.
    """

    def __init__(
        self,
        bus: EventBus,
        series_repo: SeriesRepository,
        csv_store: CsvSeriesStore | None = None,
    ) -> None:
        self.bus = bus
        self.series_repo = series_repo
        self.csv_store = csv_store
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(SeriesCreated, self.on_series_created)
        self.bus.subscribe(SeriesUpdated, self.on_series_updated)
        self.bus.subscribe(SeriesDeleted, self.on_series_deleted)
        self.bus.subscribe(OccurrenceOverridden, self.on_occurrence_overridden)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_series_created(self, event: SeriesCreated) -> None:
        logger.info("Event %d created", event.series_id)
        self._persist()

    def on_series_updated(self, event: SeriesUpdated) -> None:
        logger.info("Event %d updated", event.series_id)
        self._persist()

    def on_series_deleted(self, event: SeriesDeleted) -> None:
        logger.info("Event %d deleted", event.series_id)
        self._persist()

    def on_occurrence_overridden(self, event: OccurrenceOverridden) -> None:
        if event.is_deleted:
            logger.info(
                "Occurrence %s of event %d deleted",
                event.original_date.isoformat(),
                event.series_id,
            )
        else:
            logger.info(
                "Occurrence %s of event %d moved to %s",
                event.original_date.isoformat(),
                event.series_id,
                event.new_date.isoformat() if event.new_date else "(unchanged)",
            )
        self._persist()

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        titles = []
        for cid in event.conflicting_series_ids:
            conflicting = self.series_repo.get(cid)
            titles.append(f"{conflicting.title} ({cid})" if conflicting else str(cid))
        logger.warning(
            "Event %d saved despite conflicts with: %s",
            event.series_id,
            ", ".join(titles),
        )

    def _persist(self) -> None:
        if self.csv_store is None:
            return
        self.csv_store.save(self.series_repo.list_all())
