"""Calendar views built on occurrence expansion: range listings, day and week
agendas, and a per-day month overview."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from planner.domain.models import DayAgenda, EventSeries, Occurrence
from planner.services.recurrence import get_occurrences


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    return datetime.combine(day, time.min), datetime.combine(day, time(23, 59, 59))


def expand_all(
    all_series: Iterable[EventSeries], start: datetime, end: datetime
) -> list[Occurrence]:
    """Expand every series over ``[start, end]`` and return occurrences by start time."""
    occurrences: list[Occurrence] = []
    for series in all_series:
        duration = series.duration
        for occurrence_start in get_occurrences(series, start, end):
            occurrences.append(
                Occurrence(
                    series_id=series.id,
                    title=series.title,
                    description=series.description,
                    start=occurrence_start,
                    end=occurrence_start + duration,
                    is_recurring=series.is_recurring,
                )
            )
    # sort is stable, so ties keep series order
    occurrences.sort(key=lambda o: o.start)
    return occurrences


def day_agenda(all_series: Iterable[EventSeries], day: date) -> DayAgenda:
    start, end = _day_bounds(day)
    return DayAgenda(day=day, occurrences=expand_all(all_series, start, end))


def week_agenda(all_series: Iterable[EventSeries], first_day: date) -> list[DayAgenda]:
    """Seven consecutive day agendas starting at *first_day*."""
    series_list = list(all_series)
    last_day = first_day + timedelta(days=6)
    start, _ = _day_bounds(first_day)
    _, end = _day_bounds(last_day)

    by_day: dict[date, list[Occurrence]] = {
        first_day + timedelta(days=offset): [] for offset in range(7)
    }
    for occurrence in expand_all(series_list, start, end):
        by_day[occurrence.start.date()].append(occurrence)

    return [DayAgenda(day=day, occurrences=items) for day, items in by_day.items()]


def month_overview(
    all_series: Iterable[EventSeries], year: int, month: int
) -> dict[int, int]:
    """Map each day number of the month to its occurrence count."""
    days_in_month = calendar.monthrange(year, month)[1]
    start, _ = _day_bounds(date(year, month, 1))
    _, end = _day_bounds(date(year, month, days_in_month))

    counts = {day: 0 for day in range(1, days_in_month + 1)}
    for occurrence in expand_all(all_series, start, end):
        counts[occurrence.start.day] += 1
    return counts
