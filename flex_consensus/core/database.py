"""SQLite persistence helpers shared by the query and usage stores.

One short-lived connection per operation; writes open with BEGIN IMMEDIATE
so concurrent writers serialize on the database lock instead of racing.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


_BUSY_TIMEOUT_SECONDS = 30.0

SCHEMA = """
CREATE TABLE IF NOT EXISTS queries (
    id TEXT PRIMARY KEY,
    caller_id TEXT NOT NULL,
    question TEXT NOT NULL,
    providers TEXT NOT NULL,
    rounds INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL CHECK (status IN ('processing', 'completed', 'failed')),
    consensus TEXT,
    created_at TEXT NOT NULL,
    completed_at TEXT,
    processing_time_ms INTEGER,
    error TEXT
);
CREATE INDEX IF NOT EXISTS idx_queries_caller ON queries(caller_id, created_at);

CREATE TABLE IF NOT EXISTS provider_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    query_id TEXT NOT NULL REFERENCES queries(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    provider TEXT NOT NULL,
    response TEXT NOT NULL,
    confidence REAL NOT NULL,
    reasoning TEXT NOT NULL,
    latency_ms INTEGER NOT NULL DEFAULT 0,
    UNIQUE (query_id, provider)
);

CREATE TABLE IF NOT EXISTS usage_counters (
    caller_id TEXT NOT NULL,
    day TEXT NOT NULL,
    count INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (caller_id, day)
);
"""


@contextmanager
def connect(db_path: str | Path) -> Iterator[sqlite3.Connection]:
    """Open an autocommit connection that is always closed.

    Callers manage transactions explicitly with BEGIN / COMMIT.
    """
    conn = sqlite3.connect(
        str(db_path),
        timeout=_BUSY_TIMEOUT_SECONDS,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def write_transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block inside BEGIN IMMEDIATE, rolling back on error."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def init_schema(db_path: str | Path) -> None:
    """Switch the file to WAL journaling and create missing tables.

    WAL is a property of the database file, so later connections inherit it.
    """
    path = Path(db_path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    with connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(SCHEMA)
