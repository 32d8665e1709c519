"""Tests for CSV persistence and backup/restore framing."""

from __future__ import annotations

from datetime import datetime

import pytest

from planner.core.exceptions import BackupError, StorageError
from planner.domain.models import EventSeries, Frequency
from planner.repos.backup import create_backup, restore_backup
from planner.repos.csv_store import (
    HEADER,
    CsvSeriesStore,
    decode_exception,
    encode_exception,
    row_to_series,
    series_to_row,
)
from planner.repos.memory import SeriesRepository


def _weekly_sync() -> EventSeries:
    series = EventSeries(
        id=1,
        title="Weekly Sync",
        description="Room 4, bring notes",
        start_time=datetime(2025, 12, 1, 10, 0),
        end_time=datetime(2025, 12, 1, 11, 0),
        frequency=Frequency.WEEKLY,
        interval=1,
        recurrence_end=datetime(2025, 12, 31, 23, 59),
        max_occurrences=10,
    )
    series.add_delete_exception(datetime(2025, 12, 15, 10, 0))
    series.add_update_exception(
        datetime(2025, 12, 22, 10, 0), datetime(2025, 12, 22, 14, 0)
    )
    return series


def _dentist() -> EventSeries:
    return EventSeries(
        id=2,
        title="Dentist",
        start_time=datetime(2025, 12, 3, 9, 0),
        end_time=datetime(2025, 12, 3, 10, 0),
    )


# ---------------------------------------------------------------------------
# Row encoding
# ---------------------------------------------------------------------------


def test_exception_encoding():
    series = _weekly_sync()
    assert encode_exception(series.exceptions[0]) == "2025-12-15T10:00:00||true"
    assert (
        encode_exception(series.exceptions[1])
        == "2025-12-22T10:00:00|2025-12-22T14:00:00|false"
    )


def test_decode_exception_rejects_garbage():
    with pytest.raises(ValueError):
        decode_exception("2025-12-15T10:00:00|true")


def test_single_event_row_has_empty_recurrence_columns():
    row = series_to_row(_dentist())
    assert row[5] == "NONE"
    assert row[7:] == ["", "", ""]


def test_row_without_exceptions_column():
    row = series_to_row(_dentist())[:9]
    assert row_to_series(row).title == "Dentist"


# ---------------------------------------------------------------------------
# CsvSeriesStore
# ---------------------------------------------------------------------------


def test_save_then_load(tmp_path):
    store = CsvSeriesStore(tmp_path / "data" / "event.csv")
    store.save([_dentist(), _weekly_sync()])

    lines = store.path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == ",".join(HEADER)
    assert lines[1].startswith("1,Weekly Sync,")

    loaded = store.load()
    assert [s.id for s in loaded] == [1, 2]
    assert loaded[0] == _weekly_sync()


def test_load_missing_file_is_empty(tmp_path):
    assert CsvSeriesStore(tmp_path / "event.csv").load() == []


def test_load_skips_blank_lines(tmp_path):
    store = CsvSeriesStore(tmp_path / "event.csv")
    store.save([_dentist()])
    with store.path.open("a", encoding="utf-8") as handle:
        handle.write("\n\n")
    assert len(store.load()) == 1


def test_undecodable_file_raises_storage_error(tmp_path):
    path = tmp_path / "event.csv"
    path.write_bytes(b",".join(h.encode() for h in HEADER) + b"\n1,Caf\xe9\xff,\n")

    with pytest.raises(StorageError, match="Could not read"):
        CsvSeriesStore(path).load()


def test_malformed_row_reports_line_number(tmp_path):
    path = tmp_path / "event.csv"
    path.write_text(
        ",".join(HEADER) + "\n" + "1,Broken,,not-a-date,,NONE,1,,,\n",
        encoding="utf-8",
    )
    with pytest.raises(StorageError, match="line 2") as excinfo:
        CsvSeriesStore(path).load()
    assert excinfo.value.details["line"] == 2


# ---------------------------------------------------------------------------
# Backup / restore
# ---------------------------------------------------------------------------


def test_backup_frames_each_file(tmp_path):
    store = CsvSeriesStore(tmp_path / "data" / "event.csv")
    store.save([_dentist()])
    missing = tmp_path / "data" / "additional.csv"
    backup_file = tmp_path / "backup" / "calendar_backup.txt"

    create_backup([store.path, missing], backup_file)

    lines = backup_file.read_text(encoding="utf-8").splitlines()
    assert lines[0] == f"=== BEGIN FILE: {store.path} ==="
    assert lines[1] == ",".join(HEADER)
    assert lines[3] == f"=== END FILE: {store.path} ==="
    assert lines[5] == f"=== BEGIN FILE: {missing} ==="
    assert lines[6] == f"=== END FILE: {missing} ==="


def test_restore_overwrite(tmp_path):
    store = CsvSeriesStore(tmp_path / "data" / "event.csv")
    store.save([_dentist(), _weekly_sync()])
    backup_file = create_backup([store.path], tmp_path / "backup" / "b.txt")

    store.save([])
    restored = restore_backup(backup_file, overwrite=True)

    assert restored == [store.path]
    assert [s.id for s in store.load()] == [1, 2]


def test_restore_append_skips_repeated_header(tmp_path):
    store = CsvSeriesStore(tmp_path / "data" / "event.csv")
    store.save([_weekly_sync()])
    backup_file = create_backup([store.path], tmp_path / "backup" / "b.txt")

    store.save([_dentist()])
    restore_backup(backup_file, overwrite=False)

    text = store.path.read_text(encoding="utf-8")
    assert text.count(HEADER[0] + ",") == 1
    assert sorted(s.id for s in store.load()) == [1, 2]


def test_append_restore_with_overlapping_id_keeps_both_events(tmp_path):
    store = CsvSeriesStore(tmp_path / "data" / "event.csv")
    backed_up = _dentist().model_copy(update={"id": 1, "title": "A"})
    store.save([backed_up])
    backup_file = create_backup([store.path], tmp_path / "backup" / "b.txt")

    store.save([_dentist().model_copy(update={"id": 1, "title": "B"})])
    restore_backup(backup_file, overwrite=False)

    repo = SeriesRepository()
    assert repo.replace_all(store.load()) == 1
    assert sorted((s.id, s.title) for s in repo.list_all()) == [(1, "B"), (2, "A")]


def test_restore_without_backup_file(tmp_path):
    with pytest.raises(BackupError, match="not found"):
        restore_backup(tmp_path / "nope.txt")
