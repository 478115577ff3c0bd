"""Unit tests for the SQLite reading store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator

import pytest

from datastore.sqlite_store import SQLiteReadingStore, from_epoch_us, to_epoch_us
from services.errors import InvalidArgument, NotAvailable

UTC = timezone.utc


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 1, hour, minute, tzinfo=UTC)


@pytest.fixture
def store() -> Iterator[SQLiteReadingStore]:
    memory_store = SQLiteReadingStore()
    yield memory_store
    memory_store.close()


def test_insert_assigns_increasing_ids(store: SQLiteReadingStore) -> None:
    first = store.insert(20.0, 40.0, _at(0, 10))
    second = store.insert(21.0, 41.0, _at(0, 20))

    assert second > first


def test_list_readings_is_newest_first(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0, 10))
    store.insert(24.0, 44.0, _at(1, 10))
    store.insert(22.0, 42.0, _at(0, 50))

    rows = store.list_readings(limit=10, offset=0)

    assert [row.timestamp for row in rows] == [_at(1, 10), _at(0, 50), _at(0, 10)]
    assert [row.temperature for row in rows] == [24.0, 22.0, 20.0]


def test_list_readings_offset_past_end_is_empty(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0))

    assert store.list_readings(limit=10, offset=5) == []


def test_list_readings_limit_zero_returns_nothing(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0))

    assert store.list_readings(limit=0, offset=0) == []


def test_list_readings_rejects_negative_arguments(store: SQLiteReadingStore) -> None:
    with pytest.raises(InvalidArgument):
        store.list_readings(limit=-1, offset=0)
    with pytest.raises(InvalidArgument):
        store.list_readings(limit=1, offset=-1)


def test_aggregate_buckets_hourly_averages(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0, 10))
    store.insert(22.0, 50.0, _at(0, 50))
    store.insert(24.0, 60.0, _at(1, 10))

    buckets = store.aggregate(_at(0), _at(2), timedelta(hours=1))

    assert [bucket.bucket_start for bucket in buckets] == [_at(0), _at(1)]
    assert [bucket.avg_temperature for bucket in buckets] == [21.0, 24.0]
    assert [bucket.avg_humidity for bucket in buckets] == [45.0, 60.0]
    assert [bucket.reading_count for bucket in buckets] == [2, 1]


def test_aggregate_bounds_are_inclusive(store: SQLiteReadingStore) -> None:
    store.insert(10.0, 10.0, _at(0))
    store.insert(30.0, 30.0, _at(2))
    store.insert(99.0, 99.0, _at(2) + timedelta(microseconds=1))

    buckets = store.aggregate(_at(0), _at(2), timedelta(hours=1))

    assert [bucket.bucket_start for bucket in buckets] == [_at(0), _at(2)]
    assert [bucket.avg_temperature for bucket in buckets] == [10.0, 30.0]


def test_aggregate_skips_empty_buckets(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0, 5))
    store.insert(26.0, 46.0, _at(5, 5))

    buckets = store.aggregate(_at(0), _at(6), timedelta(hours=1))

    assert [bucket.bucket_start for bucket in buckets] == [_at(0), _at(5)]


def test_aggregate_aligns_to_epoch_not_query_start(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0, 10))
    store.insert(22.0, 50.0, _at(0, 50))
    store.insert(24.0, 60.0, _at(1, 10))

    wide = store.aggregate(_at(0), _at(2), timedelta(hours=1))
    shifted = store.aggregate(_at(0, 30), _at(2), timedelta(hours=1))

    assert [bucket.bucket_start for bucket in shifted] == [_at(0), _at(1)]
    assert shifted[0].avg_temperature == 22.0
    assert shifted[1] == wide[1]


def test_aggregate_aligns_pre_epoch_readings(store: SQLiteReadingStore) -> None:
    moment = datetime(1969, 12, 31, 23, 30, tzinfo=UTC)
    store.insert(5.0, 50.0, moment)

    buckets = store.aggregate(moment - timedelta(hours=1), moment, timedelta(hours=1))

    assert [bucket.bucket_start for bucket in buckets] == [
        datetime(1969, 12, 31, 23, 0, tzinfo=UTC)
    ]


def test_aggregate_empty_range_returns_no_buckets(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, _at(0, 10))

    assert store.aggregate(_at(3), _at(4), timedelta(hours=1)) == []


def test_aggregate_rejects_non_positive_width(store: SQLiteReadingStore) -> None:
    with pytest.raises(InvalidArgument):
        store.aggregate(_at(0), _at(1), timedelta(0))
    with pytest.raises(InvalidArgument):
        store.aggregate(_at(0), _at(1), timedelta(hours=-1))


def test_last_updated_empty_store_is_none(store: SQLiteReadingStore) -> None:
    assert store.last_updated() is None


def test_last_updated_never_decreases(store: SQLiteReadingStore) -> None:
    previous = None
    for minute in (5, 1, 30, 30, 2):
        store.insert(20.0, 40.0, _at(0, minute))
        current = store.last_updated()
        assert current is not None
        if previous is not None:
            assert current >= previous
        previous = current

    assert previous == _at(0, 30)


def test_timestamps_keep_microseconds(store: SQLiteReadingStore) -> None:
    moment = datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=UTC)
    store.insert(20.0, 40.0, moment)

    assert store.last_updated() == moment
    assert store.list_readings(1, 0)[0].timestamp == moment


def test_naive_timestamps_are_treated_as_utc(store: SQLiteReadingStore) -> None:
    store.insert(20.0, 40.0, datetime(2024, 1, 1, 12, 0))

    assert store.last_updated() == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def test_insert_defaults_timestamp_to_now(store: SQLiteReadingStore) -> None:
    before = datetime.now(UTC)
    store.insert(20.0, 40.0)
    after = datetime.now(UTC)

    stored = store.last_updated()
    assert stored is not None
    assert before <= stored <= after


def test_implausible_values_are_stored_unchanged(store: SQLiteReadingStore) -> None:
    reading_id = store.insert(-999.0, 50.0, _at(0))

    [reading] = store.list_readings(1, 0)
    assert reading.id == reading_id
    assert reading.temperature == -999.0
    assert reading.humidity == 50.0


def test_file_store_persists_and_reloads(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "sensor.db"
    store = SQLiteReadingStore(path=path)
    store.insert(20.0, 40.0, _at(0, 10))

    assert path.exists()

    reloaded = SQLiteReadingStore(path=path)
    [reading] = reloaded.list_readings(10, 0)
    assert reading.temperature == 20.0
    assert reading.timestamp == _at(0, 10)


def test_insert_fails_when_write_lock_wait_expires() -> None:
    store = SQLiteReadingStore(busy_timeout=0.05)
    store._write_lock.acquire()
    try:
        with pytest.raises(NotAvailable):
            store.insert(20.0, 40.0, _at(0))
    finally:
        store._write_lock.release()

    assert store.list_readings(10, 0) == []
    store.close()


def test_concurrent_inserts_are_not_lost(tmp_path: Path) -> None:
    store = SQLiteReadingStore(path=tmp_path / "sensor.db")

    def write(worker: int) -> list[int]:
        return [
            store.insert(float(worker), float(index), _at(0) + timedelta(seconds=worker * 100 + index))
            for index in range(25)
        ]

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = [reading_id for batch in pool.map(write, range(8)) for reading_id in batch]

    assert len(set(ids)) == 200
    assert len(store.list_readings(500, 0)) == 200


def test_unreachable_store_raises_not_available(tmp_path: Path) -> None:
    store = SQLiteReadingStore(path=tmp_path / "sensor.db")
    store._database = str(tmp_path / "missing-dir" / "sensor.db")

    with pytest.raises(NotAvailable):
        store.last_updated()


def test_epoch_conversion_round_trips() -> None:
    moment = datetime(2024, 6, 1, 8, 30, 15, 999999, tzinfo=UTC)

    assert from_epoch_us(to_epoch_us(moment)) == moment
    assert to_epoch_us(datetime(1970, 1, 1, tzinfo=UTC)) == 0
