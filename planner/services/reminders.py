"""Service for finding the next occurrence that deserves a reminder."""

from __future__ import annotations

from datetime import datetime, timedelta

from planner.domain.models import EventSeries, Reminder
from planner.services.recurrence import get_occurrences

DEFAULT_REMINDER_MINUTES = 30

_MINUTES_PER_HOUR = 60
_MINUTES_PER_DAY = 1440
_DISPLAY_FORMAT = "%b %d, %Y at %I:%M %p"


def upcoming_reminders(
    all_series: list[EventSeries],
    now: datetime,
    minutes: int = DEFAULT_REMINDER_MINUTES,
) -> list[Reminder]:
    """Occurrences starting strictly after *now* and within *minutes*, earliest first."""
    check_until = now + timedelta(minutes=minutes)
    reminders: list[Reminder] = []
    for series in all_series:
        for occurrence in get_occurrences(series, now, check_until):
            if occurrence <= now:
                continue
            reminders.append(
                Reminder(
                    series_id=series.id,
                    title=series.title,
                    start=occurrence,
                    minutes_until=int((occurrence - now).total_seconds() // 60),
                )
            )
    reminders.sort(key=lambda r: r.start)
    return reminders


def next_reminder(
    all_series: list[EventSeries],
    now: datetime,
    minutes: int = DEFAULT_REMINDER_MINUTES,
) -> Reminder | None:
    reminders = upcoming_reminders(all_series, now, minutes)
    return reminders[0] if reminders else None


def _lead_time(minutes: int) -> tuple[int, str]:
    if minutes < _MINUTES_PER_HOUR:
        return minutes, "minute"
    if minutes < _MINUTES_PER_DAY:
        return minutes // _MINUTES_PER_HOUR, "hour"
    return minutes // _MINUTES_PER_DAY, "day"


def describe_lead_time(minutes: int) -> str:
    """Render a reminder setting, e.g. ``"2 hour(s)"``."""
    value, unit = _lead_time(minutes)
    return f"{value} {unit}(s)"


def format_reminder(reminder: Reminder) -> str:
    value, unit = _lead_time(reminder.minutes_until)
    if value != 1:
        unit += "s"
    return (
        f"REMINDER: Your next event '{reminder.title}' is coming soon in "
        f"{value} {unit}!\n"
        f"   Scheduled for: {reminder.start.strftime(_DISPLAY_FORMAT)}"
    )
