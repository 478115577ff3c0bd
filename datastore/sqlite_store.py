"""Append-only SQLite persistence for sensor readings."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Iterator, List, Optional
from uuid import uuid4

from models.records import Bucket, Reading
from services.errors import InvalidArgument, NotAvailable
from settings import get_settings

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS sensor (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        temperature REAL NOT NULL,
        humidity REAL NOT NULL,
        recorded_us INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS sensor_recorded_us ON sensor (recorded_us)",
)


def to_epoch_us(value: datetime) -> int:
    """Convert a datetime to integer microseconds since the Unix epoch (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _MICROSECOND


def from_epoch_us(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


class SQLiteReadingStore:
    """Reading store backed by a SQLite file, or a private in-memory database.

    Writes go through a single lock whose wait is bounded by ``busy_timeout``;
    reads are not coordinated since rows are never updated or deleted.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        busy_timeout: float = 5.0,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.path = path
        self.busy_timeout = busy_timeout
        self._logger = logger or logging.getLogger(__name__)
        self._write_lock = Lock()
        self._keeper: Optional[sqlite3.Connection] = None
        if path:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._database = str(path)
            self._uri = False
        else:
            self._database = f"file:readings-{uuid4().hex}?mode=memory&cache=shared"
            self._uri = True
            self._keeper = self._open()
        self._ensure_schema()

    def insert(
        self,
        temperature: float,
        humidity: float,
        timestamp: Optional[datetime] = None,
    ) -> int:
        """Append one reading and return its id. Values are stored as given."""
        recorded = timestamp if timestamp is not None else datetime.now(timezone.utc)
        if not self._write_lock.acquire(timeout=self.busy_timeout):
            raise NotAvailable(
                f"Timed out after {self.busy_timeout}s waiting for the write lock."
            )
        try:
            with self._connection() as conn:
                with conn:
                    cursor = conn.execute(
                        "INSERT INTO sensor (temperature, humidity, recorded_us) VALUES (?, ?, ?)",
                        (temperature, humidity, to_epoch_us(recorded)),
                    )
                reading_id = int(cursor.lastrowid)
        finally:
            self._write_lock.release()
        self._logger.debug("Stored reading", extra={"reading_id": reading_id})
        return reading_id

    def list_readings(self, limit: int, offset: int) -> List[Reading]:
        """Return up to ``limit`` readings newest first, skipping ``offset`` rows."""
        if limit < 0 or offset < 0:
            raise InvalidArgument("limit and offset must be non-negative.")
        if limit == 0:
            return []
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT id, temperature, humidity, recorded_us
                  FROM sensor
                 ORDER BY recorded_us DESC, id DESC
                 LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()
        return [
            Reading(
                id=row[0],
                temperature=row[1],
                humidity=row[2],
                timestamp=from_epoch_us(row[3]),
            )
            for row in rows
        ]

    def aggregate(self, start: datetime, end: datetime, width: timedelta) -> List[Bucket]:
        """Average readings in ``[start, end]`` into epoch-aligned buckets of ``width``.

        Only buckets holding at least one reading are returned, ascending.
        """
        width_us = width // _MICROSECOND
        if width_us <= 0:
            raise InvalidArgument("Bucket width must be a positive duration.")
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT recorded_us - (((recorded_us % :width) + :width) % :width) AS bucket_us,
                       AVG(temperature),
                       AVG(humidity),
                       COUNT(*)
                  FROM sensor
                 WHERE recorded_us BETWEEN :start AND :end
                 GROUP BY bucket_us
                 ORDER BY bucket_us
                """,
                {"width": width_us, "start": to_epoch_us(start), "end": to_epoch_us(end)},
            ).fetchall()
        return [
            Bucket(
                bucket_start=from_epoch_us(row[0]),
                avg_temperature=row[1],
                avg_humidity=row[2],
                reading_count=row[3],
            )
            for row in rows
        ]

    def last_updated(self) -> Optional[datetime]:
        """Timestamp of the newest reading, or ``None`` when the store is empty."""
        with self._connection() as conn:
            row = conn.execute("SELECT MAX(recorded_us) FROM sensor").fetchone()
        if row is None or row[0] is None:
            return None
        return from_epoch_us(row[0])

    def close(self) -> None:
        if self._keeper is not None:
            self._keeper.close()
            self._keeper = None

    def _open(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(
                self._database,
                timeout=self.busy_timeout,
                uri=self._uri,
                check_same_thread=False,
            )
        except sqlite3.Error as exc:
            raise NotAvailable(f"Reading store {self._database!r} is unreachable.") from exc

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._open()
        try:
            yield conn
        except sqlite3.Error as exc:
            self._logger.error("Reading store query failed", extra={"reason": str(exc)})
            raise NotAvailable(f"Reading store query failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            if self.path:
                conn.execute("PRAGMA journal_mode=WAL")
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)


@lru_cache
def build_default_store(
    path: Optional[str] = None,
    busy_timeout: Optional[float] = None,
) -> SQLiteReadingStore:
    settings = get_settings()
    db_path = settings.db_path if path is None else path
    timeout = settings.busy_timeout if busy_timeout is None else busy_timeout
    return SQLiteReadingStore(
        path=Path(db_path) if db_path else None,
        busy_timeout=timeout,
    )
