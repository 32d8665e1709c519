"""Service for expanding event series into concrete occurrence start times.

Natural dates are anchored on the series start: the n-th natural occurrence
is ``start_time + n * interval`` periods. Month steps use
``dateutil.relativedelta``, which clamps to the last day of the target month,
so a series starting Jan 31 yields Jan 31, Feb 28 (29), Mar 31, Apr 30, ...
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime

from dateutil.relativedelta import relativedelta

from planner.core.exceptions import InvalidSeriesDefinition
from planner.domain.models import EventException, EventSeries, Frequency

# Ceiling on natural dates walked for a single series.
MAX_ITERATIONS = 100_000


def advance(start: datetime, frequency: Frequency, steps: int) -> datetime:
    """Return *start* shifted by *steps* periods of *frequency*."""
    if frequency == Frequency.DAILY:
        return start + relativedelta(days=steps)
    if frequency == Frequency.WEEKLY:
        return start + relativedelta(weeks=steps)
    if frequency == Frequency.MONTHLY:
        return start + relativedelta(months=steps)
    raise InvalidSeriesDefinition(
        f"Cannot advance a series with frequency {frequency}",
        {"frequency": str(frequency)},
    )


def validate_series(series: EventSeries) -> None:
    """Raise ``InvalidSeriesDefinition`` if *series* cannot be expanded."""
    stamps = (series.start_time, series.end_time, series.recurrence_end)
    if any(stamp is not None and stamp.tzinfo is not None for stamp in stamps):
        raise InvalidSeriesDefinition(
            "Series timestamps must be naive local date-times",
            {"series_id": series.id},
        )

    if series.frequency == Frequency.NONE:
        return

    if series.recurrence_end is None:
        raise InvalidSeriesDefinition(
            "Recurring series has no recurrence end date",
            {"series_id": series.id, "frequency": str(series.frequency)},
        )
    if series.interval <= 0:
        raise InvalidSeriesDefinition(
            f"Interval must be positive, got {series.interval}",
            {"series_id": series.id, "interval": series.interval},
        )


def natural_dates(series: EventSeries) -> Iterator[datetime]:
    """Yield every natural (pre-exception) occurrence start of *series*.

    Bounded by ``recurrence_end`` and ``max_occurrences``; a non-recurring
    series yields only its own start time.
    """
    validate_series(series)
    if not series.is_recurring:
        yield series.start_time
        return

    count = 0
    current = series.start_time
    while current <= series.recurrence_end and (
        series.max_occurrences is None or count < series.max_occurrences
    ):
        if count >= MAX_ITERATIONS:
            raise InvalidSeriesDefinition(
                f"Series expands to more than {MAX_ITERATIONS} occurrences",
                {"series_id": series.id},
            )
        yield current
        count += 1
        current = advance(
            series.start_time, series.frequency, count * series.interval
        )


def ensure_expandable(series: EventSeries) -> int:
    """Walk every natural date of *series* and return how many there are.

    Raises ``InvalidSeriesDefinition`` when the series cannot be expanded,
    including when it runs past ``MAX_ITERATIONS``.
    """
    return sum(1 for _ in natural_dates(series))


def is_natural_occurrence(series: EventSeries, when: datetime) -> bool:
    """Return True if *when* is one of the natural dates of *series*."""
    for natural in natural_dates(series):
        if natural == when:
            return True
        if natural > when:
            return False
    return False


def _override_map(exceptions: list[EventException]) -> dict[datetime, EventException]:
    overrides: dict[datetime, EventException] = {}
    for exception in exceptions:
        # first record for a natural date wins
        overrides.setdefault(exception.original_date, exception)
    return overrides


def get_occurrences(
    series: EventSeries, view_start: datetime, view_end: datetime
) -> list[datetime]:
    """Return the occurrence start times of *series* inside the view window.

    Both window ends are inclusive. Deleted occurrences are dropped but still
    consume a ``max_occurrences`` slot; moved occurrences are reported at
    their new start and filtered against the window by that new start.
    The result is sorted ascending.
    """
    validate_series(series)

    if not series.is_recurring:
        if view_start <= series.start_time <= view_end:
            return [series.start_time]
        return []

    overrides = _override_map(series.exceptions)
    occurrences: list[datetime] = []

    for natural in natural_dates(series):
        date_to_store = natural
        exception = overrides.get(natural)
        if exception is not None:
            if exception.is_deleted:
                continue
            if exception.new_date is not None:
                date_to_store = exception.new_date

        if view_start <= date_to_store <= view_end:
            occurrences.append(date_to_store)

    occurrences.sort()
    return occurrences
