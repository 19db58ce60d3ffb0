"""Reading storage backends.

``MemoryBackend`` is the volatile tier. ``SqliteBackend`` is the shipped
durable tier; any object satisfying :class:`DurableBackend` can replace it.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from collections import deque
from datetime import datetime
from typing import Protocol

from aquasense._constants import DURABLE_CAPACITY, MEMORY_CAPACITY
from aquasense.exceptions import StorageUnavailableError
from aquasense.models.reading import Reading

_logger = logging.getLogger(__name__)


class DurableBackend(Protocol):
    """Structural interface for the durable reading tier.

    ``query_recent`` returns newest first; the store normalizes order.
    Implementations raise :class:`StorageUnavailableError` on failure.
    """

    def append(self, reading: Reading) -> None:
        ...

    def query_recent(self, limit: int) -> list[Reading]:
        ...

    def clear(self) -> None:
        ...


class MemoryBackend:
    """Bounded FIFO buffer of readings."""

    def __init__(self, capacity: int = MEMORY_CAPACITY) -> None:
        self._readings: deque[Reading] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._readings.maxlen or 0

    def __len__(self) -> int:
        return len(self._readings)

    def append(self, reading: Reading) -> None:
        self._readings.append(reading)

    def query_recent(self, limit: int) -> list[Reading]:
        if limit <= 0:
            return []
        items = list(self._readings)[-limit:]
        items.reverse()
        return items

    def clear(self) -> None:
        self._readings.clear()


class SqliteBackend:
    """SQLite durable tier, pruned to ``capacity`` rows after every insert."""

    def __init__(self, db_path: str, *, capacity: int = DURABLE_CAPACITY) -> None:
        self.db_path = db_path
        self.capacity = capacity
        self._conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        try:
            parent = os.path.dirname(os.path.abspath(self.db_path))
            if parent:
                os.makedirs(parent, exist_ok=True)
            conn = sqlite3.connect(self.db_path, timeout=2, isolation_level=None)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS readings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    level REAL NOT NULL,
                    percentage REAL NOT NULL,
                    ts TEXT NOT NULL
                );
                """
            )
        except (OSError, sqlite3.Error) as exc:
            raise StorageUnavailableError(f"Cannot open reading database {self.db_path}: {exc}") from exc
        _logger.info("Reading database ready: %s", self.db_path)
        self._conn = conn
        return conn

    def append(self, reading: Reading) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO readings (level, percentage, ts) VALUES (?, ?, ?);",
                (reading.level, reading.percentage, reading.timestamp.isoformat()),
            )
            conn.execute(
                "DELETE FROM readings WHERE id NOT IN (SELECT id FROM readings ORDER BY id DESC LIMIT ?);",
                (self.capacity,),
            )
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Reading insert failed: {exc}") from exc

    def query_recent(self, limit: int) -> list[Reading]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT level, percentage, ts FROM readings ORDER BY id DESC LIMIT ?;",
                (limit,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Reading query failed: {exc}") from exc
        return [
            Reading(level=level, percentage=percentage, timestamp=datetime.fromisoformat(ts))
            for level, percentage, ts in rows
        ]

    def clear(self) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM readings;")
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Reading purge failed: {exc}") from exc

    def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is not None:
            conn.close()
