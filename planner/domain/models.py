"""Domain models for the calendar planner."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

try:
    from enum import StrEnum
except ImportError:  # pragma: no cover - fallback for older Python runtimes

    class StrEnum(str, Enum):
        pass


class Frequency(StrEnum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


def _require_naive(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        raise ValueError("timestamps must be naive local date-times")
    return value


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class EventException(BaseModel):
    """Override attached to one natural occurrence of a series.

    A deleted exception suppresses the occurrence; otherwise ``new_date``
    (when set) replaces its start time and the series duration still applies.
    """

    original_date: datetime
    new_date: datetime | None = None
    is_deleted: bool = False

    check_naive = field_validator("original_date", "new_date")(_require_naive)


class EventSeries(BaseModel):
    id: int = 0
    title: str
    description: str = ""
    start_time: datetime
    end_time: datetime
    frequency: Frequency = Frequency.NONE
    interval: int = Field(default=1, gt=0)
    recurrence_end: datetime | None = None
    max_occurrences: int | None = Field(default=None, gt=0)
    exceptions: list[EventException] = Field(default_factory=list)

    check_naive = field_validator("start_time", "end_time", "recurrence_end")(
        _require_naive
    )

    @field_validator("description", mode="before")
    @classmethod
    def _description_not_null(cls, value: str | None) -> str:
        return value or ""

    @model_validator(mode="after")
    def _check_definition(self) -> EventSeries:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.frequency != Frequency.NONE and self.recurrence_end is None:
            raise ValueError("recurring events require a recurrence_end")
        return self

    @property
    def is_recurring(self) -> bool:
        return self.frequency != Frequency.NONE and self.recurrence_end is not None

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    def add_delete_exception(self, original_date: datetime) -> EventException:
        exception = EventException(original_date=original_date, is_deleted=True)
        self.exceptions.append(exception)
        return exception

    def add_update_exception(
        self, original_date: datetime, new_date: datetime
    ) -> EventException:
        exception = EventException(original_date=original_date, new_date=new_date)
        self.exceptions.append(exception)
        return exception

    def exception_for(self, original_date: datetime) -> EventException | None:
        """Return the first exception targeting *original_date*, if any."""
        for exception in self.exceptions:
            if exception.original_date == original_date:
                return exception
        return None


class ConflictInfo(BaseModel):
    """One occurrence of an existing series that overlaps a candidate interval."""

    series: EventSeries
    occurrence_start: datetime
    occurrence_end: datetime


class Occurrence(BaseModel):
    series_id: int
    title: str
    description: str = ""
    start: datetime
    end: datetime
    is_recurring: bool = False


class DayAgenda(BaseModel):
    day: date
    occurrences: list[Occurrence] = Field(default_factory=list)


class EventStatistics(BaseModel):
    total: int
    single: int
    recurring: int
    by_weekday: dict[str, int]
    busiest_day: str | None = None
    busiest_count: int = 0
    window_start: datetime
    window_end: datetime


class Reminder(BaseModel):
    series_id: int
    title: str
    start: datetime
    minutes_until: int


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class SeriesCreate(BaseModel):
    title: str
    description: str = ""
    start_time: datetime
    end_time: datetime
    frequency: Frequency = Frequency.NONE
    interval: int = Field(default=1, gt=0)
    recurrence_end: datetime | None = None
    max_occurrences: int | None = Field(default=None, gt=0)


class SeriesUpdate(BaseModel):
    """Partial update; fields left as ``None`` keep their current value."""

    title: str | None = None
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    frequency: Frequency | None = None
    interval: int | None = Field(default=None, gt=0)
    recurrence_end: datetime | None = None
    max_occurrences: int | None = Field(default=None, gt=0)


class OccurrenceDeleteRequest(BaseModel):
    original_date: datetime


class OccurrenceMoveRequest(BaseModel):
    original_date: datetime
    new_date: datetime


class ConflictCheckRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    exclude_id: int | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> ConflictCheckRequest:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ConflictReport(BaseModel):
    series_id: int
    title: str
    occurrence_start: datetime
    occurrence_end: datetime
    is_recurring: bool


class ConflictCheckResponse(BaseModel):
    conflicts: list[ConflictReport] = Field(default_factory=list)
    summary: str
    warning: str | None = None
