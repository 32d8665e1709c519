"""Service for summarising the calendar: totals, weekday distribution, upcoming load."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from planner.domain.models import EventSeries, EventStatistics
from planner.services.recurrence import get_occurrences

DEFAULT_HORIZON = timedelta(days=365)
_BAR_WIDTH = 20
_RULE = "=" * 50


def compute_statistics(
    all_series: list[EventSeries],
    now: datetime,
    horizon: timedelta = DEFAULT_HORIZON,
) -> EventStatistics:
    """Count series by kind and occurrences per weekday over ``[now, now + horizon]``.

    The busiest day is the first weekday (Monday first) with the highest
    non-zero count, or ``None`` when nothing occurs in the window.
    """
    window_end = now + horizon
    by_weekday = {name: 0 for name in calendar.day_name}
    recurring = 0

    for series in all_series:
        if series.is_recurring:
            recurring += 1
        for occurrence in get_occurrences(series, now, window_end):
            by_weekday[calendar.day_name[occurrence.weekday()]] += 1

    busiest_day: str | None = None
    busiest_count = 0
    for name, count in by_weekday.items():
        if count > busiest_count:
            busiest_day, busiest_count = name, count

    return EventStatistics(
        total=len(all_series),
        single=len(all_series) - recurring,
        recurring=recurring,
        by_weekday=by_weekday,
        busiest_day=busiest_day,
        busiest_count=busiest_count,
        window_start=now,
        window_end=window_end,
    )


def _bar(count: int, maximum: int) -> str:
    if maximum == 0:
        return ""
    return "#" * int(count * _BAR_WIDTH / maximum)


def format_statistics_report(stats: EventStatistics) -> str:
    if stats.total == 0:
        return "EVENT STATISTICS\n\nNo events found in the system."

    lines = [
        "EVENT STATISTICS",
        _RULE,
        "",
        f"Total Events: {stats.total}",
        "",
        "Events by Type:",
        f"   - Single Events: {stats.single}",
        f"   - Recurring Events: {stats.recurring}",
        "",
    ]
    if stats.busiest_day is not None:
        lines += [
            f"Busiest Day of the Week: {stats.busiest_day} "
            f"({stats.busiest_count} event occurrences in window)",
            "",
        ]

    lines.append("Event Distribution by Day of Week:")
    for name, count in stats.by_weekday.items():
        lines.append(
            f"   {name[:3]:<3}: {count:3d} events {_bar(count, stats.busiest_count)}"
        )
    lines += ["", _RULE]
    return "\n".join(lines)


def quick_summary(all_series: list[EventSeries]) -> str:
    recurring = sum(1 for series in all_series if series.is_recurring)
    total = len(all_series)
    return f"Total: {total} events ({total - recurring} single, {recurring} recurring)"


def upcoming_count(all_series: list[EventSeries], now: datetime, days: int) -> int:
    """Number of occurrences starting within the next *days* days."""
    window_end = now + timedelta(days=days)
    return sum(len(get_occurrences(series, now, window_end)) for series in all_series)
