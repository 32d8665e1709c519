"""Tests for the in-memory event store."""

from __future__ import annotations

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from planner.core.exceptions import (
    InvalidOccurrence,
    InvalidSeriesDefinition,
    SeriesNotFound,
)
from planner.domain.models import EventSeries, Frequency, SeriesCreate, SeriesUpdate
from planner.repos.memory import SeriesRepository
from planner.services.recurrence import get_occurrences

DECEMBER = (datetime(2025, 12, 1), datetime(2025, 12, 31, 23, 59))


@pytest.fixture()
def repo() -> SeriesRepository:
    return SeriesRepository()


def _weekly(**overrides) -> SeriesCreate:
    defaults = dict(
        title="Weekly Sync",
        description="Team catch-up",
        start_time=datetime(2025, 12, 1, 10, 0),
        end_time=datetime(2025, 12, 1, 11, 0),
        frequency=Frequency.WEEKLY,
        recurrence_end=datetime(2025, 12, 31, 23, 59),
        max_occurrences=10,
    )
    defaults.update(overrides)
    return SeriesCreate(**defaults)


def _single(title: str = "Dentist", day: int = 3) -> SeriesCreate:
    return SeriesCreate(
        title=title,
        description="Downtown Dental",
        start_time=datetime(2025, 12, day, 9, 0),
        end_time=datetime(2025, 12, day, 10, 0),
    )


# ---------------------------------------------------------------------------
# Ids and CRUD
# ---------------------------------------------------------------------------


def test_add_assigns_increasing_ids(repo):
    first = repo.add(_weekly())
    second = repo.add(_single())
    assert (first.id, second.id) == (1, 2)
    assert repo.get(2).title == "Dentist"


def test_ids_are_not_reused_after_delete(repo):
    repo.add(_weekly())
    second = repo.add(_single())
    repo.delete(second.id)
    third = repo.add(_single("Haircut"))
    assert third.id == 3


def test_replace_all_continues_after_highest_id(repo):
    repo.replace_all(
        [
            EventSeries(
                id=41,
                title="Loaded",
                start_time=datetime(2025, 1, 1, 9, 0),
                end_time=datetime(2025, 1, 1, 10, 0),
            )
        ]
    )
    assert repo.add(_single()).id == 42


def test_replace_all_renumbers_duplicate_ids(repo):
    def loaded(title: str) -> EventSeries:
        return EventSeries(
            id=1,
            title=title,
            start_time=datetime(2025, 1, 1, 9, 0),
            end_time=datetime(2025, 1, 1, 10, 0),
        )

    renumbered = repo.replace_all([loaded("B"), loaded("A")])

    assert renumbered == 1
    assert sorted((s.id, s.title) for s in repo.list_all()) == [(1, "B"), (2, "A")]
    assert repo.add(_single()).id == 3


def test_add_rejects_series_past_iteration_ceiling(repo):
    with pytest.raises(InvalidSeriesDefinition, match="more than"):
        repo.add(
            _weekly(
                frequency=Frequency.DAILY,
                recurrence_end=datetime(2400, 1, 1),
                max_occurrences=None,
            )
        )
    assert repo.list_all() == []
    assert repo.add(_single()).id == 1


def test_update_rejects_series_past_iteration_ceiling(repo):
    series = repo.add(_weekly())
    changes = SeriesUpdate(
        frequency=Frequency.DAILY,
        recurrence_end=datetime(2400, 1, 1),
        max_occurrences=None,
    )
    with pytest.raises(InvalidSeriesDefinition):
        repo.update(series.id, changes)
    assert repo.get(series.id).recurrence_end == datetime(2025, 12, 31, 23, 59)


def test_require_unknown_raises(repo):
    with pytest.raises(SeriesNotFound):
        repo.require(99)
    with pytest.raises(SeriesNotFound):
        repo.delete(99)


def test_list_all_is_a_snapshot(repo):
    repo.add(_weekly())
    snapshot = repo.list_all()
    repo.add(_single())
    assert len(snapshot) == 1
    assert len(repo.list_all()) == 2


def test_update_keeps_unset_fields(repo):
    series = repo.add(_weekly())
    updated = repo.update(series.id, SeriesUpdate(title="Renamed"))
    assert updated.title == "Renamed"
    assert updated.description == "Team catch-up"
    assert updated.frequency == Frequency.WEEKLY
    assert repo.get(series.id).title == "Renamed"


def test_update_keeps_exceptions(repo):
    series = repo.add(_weekly())
    repo.delete_occurrence(series.id, datetime(2025, 12, 15, 10, 0))
    updated = repo.update(series.id, SeriesUpdate(description="Moved rooms"))
    assert len(updated.exceptions) == 1


def test_update_can_turn_series_into_single_event(repo):
    series = repo.add(_weekly())
    updated = repo.update(
        series.id,
        SeriesUpdate(frequency=Frequency.NONE, recurrence_end=None, max_occurrences=None),
    )
    assert not updated.is_recurring
    assert get_occurrences(updated, *DECEMBER) == [datetime(2025, 12, 1, 10, 0)]


def test_invalid_update_is_rejected_and_not_stored(repo):
    series = repo.add(_weekly())
    with pytest.raises(ValidationError):
        repo.update(series.id, SeriesUpdate(end_time=datetime(2025, 12, 1, 9, 0)))
    assert repo.get(series.id).end_time == datetime(2025, 12, 1, 11, 0)


# ---------------------------------------------------------------------------
# Single-occurrence edits
# ---------------------------------------------------------------------------


def test_delete_occurrence(repo):
    series = repo.add(_weekly())
    repo.delete_occurrence(series.id, datetime(2025, 12, 15, 10, 0))
    assert datetime(2025, 12, 15, 10, 0) not in get_occurrences(
        repo.get(series.id), *DECEMBER
    )


def test_move_occurrence(repo):
    series = repo.add(_weekly())
    repo.move_occurrence(
        series.id, datetime(2025, 12, 22, 10, 0), datetime(2025, 12, 22, 14, 0)
    )
    occurrences = get_occurrences(repo.get(series.id), *DECEMBER)
    assert datetime(2025, 12, 22, 14, 0) in occurrences
    assert datetime(2025, 12, 22, 10, 0) not in occurrences


def test_second_edit_replaces_first(repo):
    series = repo.add(_weekly())
    repo.move_occurrence(
        series.id, datetime(2025, 12, 22, 10, 0), datetime(2025, 12, 22, 14, 0)
    )
    repo.delete_occurrence(series.id, datetime(2025, 12, 22, 10, 0))

    stored = repo.get(series.id)
    assert len(stored.exceptions) == 1
    assert stored.exceptions[0].is_deleted
    assert datetime(2025, 12, 22, 14, 0) not in get_occurrences(stored, *DECEMBER)


def test_occurrence_edit_on_single_event_is_rejected(repo):
    series = repo.add(_single())
    with pytest.raises(InvalidOccurrence, match="Only recurring"):
        repo.delete_occurrence(series.id, series.start_time)


def test_occurrence_edit_must_target_natural_date(repo):
    series = repo.add(_weekly())
    with pytest.raises(InvalidOccurrence, match="is not an occurrence"):
        repo.delete_occurrence(series.id, datetime(2025, 12, 16, 10, 0))
    assert repo.get(series.id).exceptions == []


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def test_search_by_title_is_case_insensitive(repo):
    repo.add(_weekly())
    repo.add(_single())
    assert [s.title for s in repo.search_by_title("SYNC")] == ["Weekly Sync"]


def test_search_with_empty_keyword_returns_nothing(repo):
    repo.add(_weekly())
    assert repo.search_by_title("") == []
    assert repo.search_by_description(None) == []


def test_search_by_description(repo):
    repo.add(_weekly())
    repo.add(_single())
    assert [s.title for s in repo.search_by_description("dental")] == ["Dentist"]


def test_search_by_date_uses_occurrences(repo):
    repo.add(_weekly())
    repo.add(_single(day=8))
    titles = sorted(s.title for s in repo.search_by_date(date(2025, 12, 8)))
    assert titles == ["Dentist", "Weekly Sync"]
    assert repo.search_by_date(date(2025, 12, 9)) == []
