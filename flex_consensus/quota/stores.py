"""Usage counter backends for the Quota Tracker.

Each backend implements one atomic operation, `increment_if_below()`: add 1
to the (caller, day) counter only when the result stays within the limit,
and report whether it did. There is no separate read-then-write step.

Backends:
- InMemoryUsageStore: dict guarded by threading.Lock (tests, single process)
- SQLiteUsageStore: conditional upsert inside BEGIN IMMEDIATE (persistent)
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import date
from pathlib import Path
from typing import Protocol, runtime_checkable

from flex_consensus.core.database import connect, init_schema, write_transaction


@runtime_checkable
class UsageStore(Protocol):
    """Storage for (caller, day) usage counters."""

    def increment_if_below(self, caller_id: str, day: date, limit: int) -> tuple[bool, int]:
        """Atomically increment the counter if it is below `limit`.

        Returns:
            (admitted, count) where count is the value after the operation.
        """
        ...

    def get_count(self, caller_id: str, day: date) -> int:
        """Current counter value (0 when no row exists)."""
        ...


class InMemoryUsageStore:
    """In-memory usage counters.

    Attributes:
        _counts: (caller_id, ISO day) -> count
        _lock: Threading lock making check-and-increment indivisible
    """

    def __init__(self) -> None:
        self._counts: dict[tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def increment_if_below(self, caller_id: str, day: date, limit: int) -> tuple[bool, int]:
        key = (caller_id, day.isoformat())
        with self._lock:
            count = self._counts.get(key, 0)
            if count >= limit:
                return False, count
            self._counts[key] = count + 1
            return True, count + 1

    def get_count(self, caller_id: str, day: date) -> int:
        with self._lock:
            return self._counts.get((caller_id, day.isoformat()), 0)


class SQLiteUsageStore:
    """Usage counters persisted in the `usage_counters` table.

    The (caller_id, day) primary key enforces one row per caller per day.
    The upsert only increments when `count < limit`, so the check and the
    write are a single statement.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        init_schema(self.db_path)

    def increment_if_below(self, caller_id: str, day: date, limit: int) -> tuple[bool, int]:
        day_key = day.isoformat()
        with connect(self.db_path) as conn, write_transaction(conn):
            if limit <= 0:
                return False, _read_count(conn, caller_id, day_key)
            cursor = conn.execute(
                "INSERT INTO usage_counters (caller_id, day, count) VALUES (?, ?, 1)"
                " ON CONFLICT(caller_id, day) DO UPDATE SET count = count + 1"
                " WHERE usage_counters.count < ?",
                (caller_id, day_key, limit),
            )
            admitted = cursor.rowcount == 1
            return admitted, _read_count(conn, caller_id, day_key)

    def get_count(self, caller_id: str, day: date) -> int:
        with connect(self.db_path) as conn:
            return _read_count(conn, caller_id, day.isoformat())


def _read_count(conn: sqlite3.Connection, caller_id: str, day_key: str) -> int:
    row = conn.execute(
        "SELECT count FROM usage_counters WHERE caller_id = ? AND day = ?",
        (caller_id, day_key),
    ).fetchone()
    return row["count"] if row else 0
