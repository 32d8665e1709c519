"""Service for detecting scheduling conflicts against (possibly recurring) series."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from planner.domain.models import ConflictInfo, EventSeries
from planner.services.recurrence import get_occurrences

# Expansion margin around the candidate interval.
CONFLICT_WINDOW_PAD = timedelta(days=7)

_DISPLAY_FORMAT = "%b %d, %Y at %I:%M %p"
_SUMMARY_TITLES = 3


def times_overlap(
    start1: datetime, end1: datetime, start2: datetime, end2: datetime
) -> bool:
    """Half-open overlap test: touching boundaries (end == start) do not overlap."""
    return start1 < end2 and start2 < end1


def detect_conflicts(
    candidate_start: datetime,
    candidate_end: datetime,
    all_series: Iterable[EventSeries],
    exclude_id: int | None = None,
    pad: timedelta = CONFLICT_WINDOW_PAD,
) -> list[ConflictInfo]:
    """Return every occurrence of *all_series* overlapping the candidate interval.

    The series with id *exclude_id* is skipped (the one being edited). Each
    series is expanded over the candidate interval widened by *pad* on both
    sides; every occurrence, moved or not, inherits the series duration.
    Results follow the iteration order of *all_series*, then occurrence order.
    """
    range_start = candidate_start - pad
    range_end = candidate_end + pad

    conflicts: list[ConflictInfo] = []
    for series in all_series:
        if exclude_id is not None and series.id == exclude_id:
            continue

        duration = series.duration
        for occurrence_start in get_occurrences(series, range_start, range_end):
            occurrence_end = occurrence_start + duration
            if times_overlap(
                candidate_start, candidate_end, occurrence_start, occurrence_end
            ):
                conflicts.append(
                    ConflictInfo(
                        series=series,
                        occurrence_start=occurrence_start,
                        occurrence_end=occurrence_end,
                    )
                )
    return conflicts


def format_conflict_warning(conflicts: list[ConflictInfo]) -> str | None:
    """Build a numbered, human-readable warning; ``None`` when nothing conflicts."""
    if not conflicts:
        return None

    lines = [
        "SCHEDULING CONFLICT DETECTED!",
        "",
        "This event conflicts with existing event(s):",
        "",
    ]
    for number, conflict in enumerate(conflicts, start=1):
        lines.append(f"{number}. {conflict.series.title}")
        line = (
            f"   Time: {conflict.occurrence_start.strftime(_DISPLAY_FORMAT)}"
            f" - {conflict.occurrence_end.strftime(_DISPLAY_FORMAT)}"
        )
        if conflict.series.is_recurring:
            line += " [Recurring]"
        lines.append(line)
    return "\n".join(lines)


def conflict_summary(conflicts: list[ConflictInfo]) -> str:
    """One-line summary naming at most three conflicting series."""
    if not conflicts:
        return "No conflicts"

    titles = ", ".join(c.series.title for c in conflicts[:_SUMMARY_TITLES])
    summary = f"{len(conflicts)} conflict(s): {titles}"
    if len(conflicts) > _SUMMARY_TITLES:
        summary += f" and {len(conflicts) - _SUMMARY_TITLES} more..."
    return summary
