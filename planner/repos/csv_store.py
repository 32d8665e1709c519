"""CSV persistence for event series.

One row per series; the last column packs the series' exceptions as
``original|new|deleted`` records joined with ``;``.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from planner.core.exceptions import StorageError
from planner.domain.models import EventException, EventSeries, Frequency

logger = logging.getLogger(__name__)

HEADER = [
    "eventId",
    "title",
    "description",
    "startDateTime",
    "endDateTime",
    "frequency",
    "interval",
    "recurrenceEndDate",
    "maxOccurrences",
    "exceptions",
]

_EXCEPTION_SEPARATOR = ";"
_FIELD_SEPARATOR = "|"


def _format_stamp(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def _parse_stamp(value: str) -> datetime | None:
    value = value.strip()
    return datetime.fromisoformat(value) if value else None


def encode_exception(exception: EventException) -> str:
    return _FIELD_SEPARATOR.join(
        [
            _format_stamp(exception.original_date),
            _format_stamp(exception.new_date),
            "true" if exception.is_deleted else "false",
        ]
    )


def decode_exception(text: str) -> EventException:
    parts = text.split(_FIELD_SEPARATOR)
    if len(parts) != 3:
        raise ValueError(f"malformed exception record {text!r}")
    original, new, deleted = parts
    return EventException(
        original_date=_parse_stamp(original),
        new_date=_parse_stamp(new),
        is_deleted=deleted.strip().lower() == "true",
    )


def series_to_row(series: EventSeries) -> list[str]:
    return [
        str(series.id),
        series.title,
        series.description,
        _format_stamp(series.start_time),
        _format_stamp(series.end_time),
        series.frequency.value,
        str(series.interval),
        _format_stamp(series.recurrence_end),
        "" if series.max_occurrences is None else str(series.max_occurrences),
        _EXCEPTION_SEPARATOR.join(encode_exception(e) for e in series.exceptions),
    ]


def row_to_series(row: list[str]) -> EventSeries:
    """Build a series from one CSV row; raises ``ValueError`` on bad data."""
    if len(row) < len(HEADER) - 1:
        raise ValueError(f"expected {len(HEADER)} columns, got {len(row)}")
    packed = row[9].strip() if len(row) > 9 else ""
    max_occurrences = row[8].strip()
    return EventSeries(
        id=int(row[0]),
        title=row[1].strip(),
        description=row[2].strip(),
        start_time=_parse_stamp(row[3]),
        end_time=_parse_stamp(row[4]),
        frequency=Frequency(row[5].strip()),
        interval=int(row[6]),
        recurrence_end=_parse_stamp(row[7]),
        max_occurrences=int(max_occurrences) if max_occurrences else None,
        exceptions=[
            decode_exception(record)
            for record in packed.split(_EXCEPTION_SEPARATOR)
            if record.strip()
        ],
    )


class CsvSeriesStore:
    """Reads and writes the event CSV file at *path*."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> list[EventSeries]:
        """Return every series in the file; a missing file is an empty calendar."""
        if not self.path.exists():
            logger.info("No event file at %s, starting empty", self.path)
            return []

        series_list: list[EventSeries] = []
        try:
            with self.path.open(newline="", encoding="utf-8") as handle:
                reader = csv.reader(handle)
                for line_number, row in enumerate(reader, start=1):
                    if line_number == 1 and row[:1] == HEADER[:1]:
                        continue
                    if not any(cell.strip() for cell in row):
                        continue
                    try:
                        series_list.append(row_to_series(row))
                    except (ValueError, ValidationError) as exc:
                        raise StorageError(
                            f"Malformed event on line {line_number} of {self.path}",
                            {"line": line_number, "error": str(exc)},
                        ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(
                f"Could not read {self.path}: {exc}", {"path": str(self.path)}
            ) from exc

        logger.info("Loaded %d event(s) from %s", len(series_list), self.path)
        return series_list

    def save(self, series_list: list[EventSeries]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", newline="", encoding="utf-8") as handle:
                writer = csv.writer(handle)
                writer.writerow(HEADER)
                for series in sorted(series_list, key=lambda s: s.id):
                    writer.writerow(series_to_row(series))
        except OSError as exc:
            raise StorageError(
                f"Could not write {self.path}: {exc}", {"path": str(self.path)}
            ) from exc
        logger.debug("Saved %d event(s) to %s", len(series_list), self.path)
