"""Parsing of user-supplied date-time strings into naive local datetimes."""

from __future__ import annotations

from datetime import date, datetime

import dateparser

from planner.core.exceptions import InvalidDateTime

# Accepted verbatim before falling back to dateparser's fuzzy matching.
_EXACT_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S")


def parse_local_datetime(raw: str | None, now: datetime | None = None) -> datetime:
    """Parse *raw* into a naive local datetime with second precision.

    ``yyyy-MM-dd HH:mm:ss`` and ISO forms are matched exactly; anything else
    ("tomorrow 9am", "Dec 22 2025 14:00") goes through ``dateparser`` with
    *now* as the relative base. Raises ``InvalidDateTime`` when nothing parses.
    """
    if raw is None or not raw.strip():
        raise InvalidDateTime("A date/time value is required")
    text = raw.strip()

    for fmt in _EXACT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    settings = {
        "PREFER_DATES_FROM": "future",
        "RETURN_AS_TIMEZONE_AWARE": False,
        "DATE_ORDER": "YMD",
    }
    if now is not None:
        settings["RELATIVE_BASE"] = now.replace(tzinfo=None)

    result = dateparser.parse(text, settings=settings)
    if result is None:
        raise InvalidDateTime(f"Could not parse date/time {raw!r}", {"value": raw})
    return result.replace(tzinfo=None, microsecond=0)


def parse_local_date(raw: str | None, now: datetime | None = None) -> date:
    """Parse *raw* as a calendar day (``yyyy-MM-dd`` or any dateparser phrase)."""
    if raw is not None:
        try:
            return date.fromisoformat(raw.strip())
        except ValueError:
            pass
    return parse_local_datetime(raw, now).date()
