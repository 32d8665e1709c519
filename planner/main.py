"""FastAPI application: entry point for the calendar planner service."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from planner.core.config import get_settings
from planner.core.exceptions import (
    BackupError,
    InvalidDateTime,
    InvalidOccurrence,
    InvalidSeriesDefinition,
    PlannerError,
    SeriesNotFound,
    StorageError,
)
from planner.core.logging_config import setup_logging
from planner.domain.bus import EventBus
from planner.domain.events import (
    ConflictDetected,
    OccurrenceOverridden,
    SeriesCreated,
    SeriesDeleted,
    SeriesUpdated,
)
from planner.domain.handlers import HandlerRegistry
from planner.domain.models import (
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictInfo,
    ConflictReport,
    DayAgenda,
    EventException,
    EventSeries,
    EventStatistics,
    Occurrence,
    OccurrenceDeleteRequest,
    OccurrenceMoveRequest,
    SeriesCreate,
    SeriesUpdate,
)
from planner.repos.backup import create_backup, restore_backup
from planner.repos.csv_store import CsvSeriesStore
from planner.repos.memory import SeriesRepository
from planner.services.conflicts import (
    conflict_summary,
    detect_conflicts,
    format_conflict_warning,
)
from planner.services.parser import parse_local_date, parse_local_datetime
from planner.services.recurrence import ensure_expandable, get_occurrences
from planner.services.reminders import (
    describe_lead_time,
    format_reminder,
    next_reminder,
)
from planner.services.statistics import (
    compute_statistics,
    format_statistics_report,
    quick_summary,
    upcoming_count,
)
from planner.services.views import day_agenda, expand_all, month_overview, week_agenda

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title="Calendar Planner Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
series_repo = SeriesRepository()
csv_store = CsvSeriesStore(settings.event_file) if settings.event_file else None
backup_file = settings.resolved_backup_file

handler_registry = HandlerRegistry(
    bus=event_bus,
    series_repo=series_repo,
    csv_store=csv_store,
)

if csv_store is not None:
    # duplicate ids get renumbered on load; write the new ids back
    if series_repo.replace_all(csv_store.load()):
        csv_store.save(series_repo.list_all())


# ── Error handlers ────────────────────────────────────────────────────


def _error_response(status_code: int, exc: PlannerError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.message,
            "error": type(exc).__name__,
            "details": exc.details,
        },
    )


@app.exception_handler(SeriesNotFound)
async def series_not_found_handler(request: Request, exc: SeriesNotFound) -> JSONResponse:
    logger.info("Event not found: %s %s", request.method, request.url.path)
    return _error_response(404, exc)


@app.exception_handler(InvalidSeriesDefinition)
@app.exception_handler(InvalidOccurrence)
@app.exception_handler(InvalidDateTime)
async def invalid_input_handler(request: Request, exc: PlannerError) -> JSONResponse:
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return _error_response(422, exc)


@app.exception_handler(BackupError)
async def backup_error_handler(request: Request, exc: BackupError) -> JSONResponse:
    logger.error("Backup operation failed: %s", exc.message)
    return _error_response(400, exc)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure: %s", exc.message, extra={"details": exc.details})
    return _error_response(500, exc)


@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning("Invalid event definition: %d error(s)", exc.error_count())
    return JSONResponse(
        status_code=422,
        content={
            "detail": exc.errors(
                include_url=False, include_context=False, include_input=False
            ),
            "error": "ValidationError",
        },
    )


# ── Helpers ───────────────────────────────────────────────────────────


def _now(raw: str | None) -> datetime:
    if raw is None:
        return datetime.now().replace(microsecond=0)
    return parse_local_datetime(raw)


def _reports(conflicts: list[ConflictInfo]) -> list[ConflictReport]:
    return [
        ConflictReport(
            series_id=c.series.id,
            title=c.series.title,
            occurrence_start=c.occurrence_start,
            occurrence_end=c.occurrence_end,
            is_recurring=c.series.is_recurring,
        )
        for c in conflicts
    ]


def _check_conflicts(
    start: datetime, end: datetime, exclude_id: int | None = None
) -> list[ConflictInfo]:
    return detect_conflicts(
        start,
        end,
        series_repo.list_all(),
        exclude_id=exclude_id,
        pad=timedelta(days=settings.conflict_pad_days),
    )


def _refuse_on_conflict(conflicts: list[ConflictInfo]) -> None:
    raise HTTPException(
        status_code=409,
        detail={
            "message": conflict_summary(conflicts),
            "warning": format_conflict_warning(conflicts),
            "conflicts": [r.model_dump(mode="json") for r in _reports(conflicts)],
        },
    )


# ── Events ────────────────────────────────────────────────────────────


@app.post("/events", response_model=EventSeries, status_code=201)
def create_event(payload: SeriesCreate, force: bool = False) -> EventSeries:
    """Create a single or recurring event.

    A series whose natural dates cannot be walked to the end is refused
    with 422. The first occurrence is checked against the calendar;
    overlapping occurrences yield a 409 unless ``force=true``.
    """
    candidate = EventSeries(**payload.model_dump())
    ensure_expandable(candidate)
    conflicts = _check_conflicts(candidate.start_time, candidate.end_time)
    if conflicts and not force:
        _refuse_on_conflict(conflicts)

    series = series_repo.add(candidate)
    event_bus.publish(SeriesCreated(series_id=series.id))
    if conflicts:
        event_bus.publish(
            ConflictDetected(
                series_id=series.id,
                conflicting_series_ids=[c.series.id for c in conflicts],
            )
        )
    return series


@app.get("/events", response_model=list[EventSeries])
def list_events() -> list[EventSeries]:
    """Return all stored events."""
    return series_repo.list_all()


@app.get("/events/search", response_model=list[EventSeries])
def search_events(
    title: str | None = None,
    description: str | None = None,
    on: str | None = None,
) -> list[EventSeries]:
    """Search by title keyword, description keyword, or a calendar day."""
    if title is not None:
        return series_repo.search_by_title(title)
    if description is not None:
        return series_repo.search_by_description(description)
    if on is not None:
        return series_repo.search_by_date(parse_local_date(on))
    return []


@app.get("/events/{series_id}", response_model=EventSeries)
def get_event(series_id: int) -> EventSeries:
    """Return a single event by id."""
    return series_repo.require(series_id)


@app.patch("/events/{series_id}", response_model=EventSeries)
def update_event(series_id: int, changes: SeriesUpdate, force: bool = False) -> EventSeries:
    """Update a whole series; conflicts are checked against every other event."""
    preview = series_repo.preview_update(series_id, changes)
    conflicts = _check_conflicts(preview.start_time, preview.end_time, exclude_id=series_id)
    if conflicts and not force:
        _refuse_on_conflict(conflicts)

    series = series_repo.update(series_id, changes)
    event_bus.publish(SeriesUpdated(series_id=series_id))
    if conflicts:
        event_bus.publish(
            ConflictDetected(
                series_id=series_id,
                conflicting_series_ids=[c.series.id for c in conflicts],
            )
        )
    return series


@app.delete("/events/{series_id}", status_code=200)
def delete_event(series_id: int) -> dict:
    series_repo.delete(series_id)
    event_bus.publish(SeriesDeleted(series_id=series_id))
    return {"status": "deleted", "id": series_id}


@app.post("/events/{series_id}/occurrences/delete", response_model=EventException)
def delete_occurrence(series_id: int, body: OccurrenceDeleteRequest) -> EventException:
    """Delete one occurrence of a recurring event."""
    exception = series_repo.delete_occurrence(series_id, body.original_date)
    event_bus.publish(
        OccurrenceOverridden(
            series_id=series_id,
            original_date=body.original_date,
            is_deleted=True,
        )
    )
    return exception


@app.post("/events/{series_id}/occurrences/move", response_model=EventException)
def move_occurrence(
    series_id: int, body: OccurrenceMoveRequest, force: bool = False
) -> EventException:
    """Move one occurrence of a recurring event, keeping its duration."""
    series = series_repo.require(series_id)
    conflicts = _check_conflicts(
        body.new_date, body.new_date + series.duration, exclude_id=series_id
    )
    if conflicts and not force:
        _refuse_on_conflict(conflicts)

    exception = series_repo.move_occurrence(series_id, body.original_date, body.new_date)
    event_bus.publish(
        OccurrenceOverridden(
            series_id=series_id,
            original_date=body.original_date,
            new_date=body.new_date,
        )
    )
    return exception


@app.get("/events/{series_id}/occurrences", response_model=list[datetime])
def list_series_occurrences(series_id: int, start: str, end: str) -> list[datetime]:
    """Expand one event over ``[start, end]``."""
    series = series_repo.require(series_id)
    return get_occurrences(series, parse_local_datetime(start), parse_local_datetime(end))


# ── Views ─────────────────────────────────────────────────────────────


@app.get("/occurrences", response_model=list[Occurrence])
def list_occurrences(start: str, end: str) -> list[Occurrence]:
    """All occurrences of all events in ``[start, end]``, by start time."""
    return expand_all(
        series_repo.list_all(), parse_local_datetime(start), parse_local_datetime(end)
    )


@app.get("/agenda/day", response_model=DayAgenda)
def get_day_agenda(on: str | None = None) -> DayAgenda:
    day = parse_local_date(on) if on else date.today()
    return day_agenda(series_repo.list_all(), day)


@app.get("/agenda/week", response_model=list[DayAgenda])
def get_week_agenda(start: str | None = None) -> list[DayAgenda]:
    """Seven days starting at *start* (today by default)."""
    first_day = parse_local_date(start) if start else date.today()
    return week_agenda(series_repo.list_all(), first_day)


@app.get("/calendar/{year}/{month}")
def get_month_overview(year: int, month: int) -> dict:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="month must be between 1 and 12")
    return {
        "year": year,
        "month": month,
        "days": month_overview(series_repo.list_all(), year, month),
    }


# ── Conflicts ─────────────────────────────────────────────────────────


@app.post("/conflicts/check", response_model=ConflictCheckResponse)
def check_conflicts(body: ConflictCheckRequest) -> ConflictCheckResponse:
    """Advisory check; never modifies the calendar."""
    conflicts = _check_conflicts(body.start_time, body.end_time, exclude_id=body.exclude_id)
    return ConflictCheckResponse(
        conflicts=_reports(conflicts),
        summary=conflict_summary(conflicts),
        warning=format_conflict_warning(conflicts),
    )


# ── Statistics & reminders ────────────────────────────────────────────


@app.get("/statistics")
def get_statistics(now: str | None = None, upcoming_days: int = 7) -> dict:
    current = _now(now)
    all_series = series_repo.list_all()
    stats: EventStatistics = compute_statistics(
        all_series, current, timedelta(days=settings.statistics_horizon_days)
    )
    return {
        "statistics": stats.model_dump(mode="json"),
        "summary": quick_summary(all_series),
        "upcoming": upcoming_count(all_series, current, upcoming_days),
        "report": format_statistics_report(stats),
    }


@app.get("/reminders/next")
def get_next_reminder(now: str | None = None, minutes: int | None = None) -> dict:
    """Return the next occurrence starting within the reminder lead time."""
    lead = minutes if minutes is not None else settings.reminder_minutes
    if lead <= 0:
        raise HTTPException(status_code=422, detail="minutes must be positive")
    reminder = next_reminder(series_repo.list_all(), _now(now), lead)
    return {
        "setting": f"{describe_lead_time(lead)} before event",
        "reminder": reminder.model_dump(mode="json") if reminder else None,
        "message": format_reminder(reminder) if reminder else None,
    }


# ── Backup ────────────────────────────────────────────────────────────


def _storage() -> CsvSeriesStore:
    store = handler_registry.csv_store
    if store is None or backup_file is None:
        raise BackupError("Backup requires PLANNER_DATA_DIR to be configured")
    return store


@app.post("/backup")
def backup() -> dict:
    store = _storage()
    store.save(series_repo.list_all())
    path = create_backup([store.path], backup_file)
    return {"status": "ok", "backup_file": str(path)}


@app.post("/restore")
def restore(overwrite: bool = True) -> dict:
    """Restore data files from the backup and reload the calendar."""
    store = _storage()
    restored = restore_backup(backup_file, overwrite=overwrite)
    renumbered = series_repo.replace_all(store.load())
    if renumbered:
        store.save(series_repo.list_all())
    return {
        "status": "ok",
        "restored": [str(p) for p in restored],
        "renumbered": renumbered,
        "events": len(series_repo.list_all()),
    }
