"""Unit tests for the SQLite helpers."""

import sqlite3

import pytest

from flex_consensus.core.database import connect, init_schema, write_transaction


class TestInitSchema:
    """Tests for init_schema()."""

    def test_creates_tables_in_wal_mode(self, tmp_path) -> None:
        db_path = tmp_path / "nested" / "flex.db"

        init_schema(db_path)

        with connect(db_path) as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        assert mode == "wal"
        assert {"queries", "provider_results", "usage_counters"} <= tables

    def test_is_idempotent(self, tmp_path) -> None:
        init_schema(tmp_path / "flex.db")
        init_schema(tmp_path / "flex.db")


class TestConnect:
    """Tests for connect() and write_transaction()."""

    def test_foreign_keys_enforced(self, tmp_path) -> None:
        db_path = tmp_path / "flex.db"
        init_schema(db_path)

        with connect(db_path) as conn, pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO provider_results (query_id, position, provider, response, confidence, reasoning)"
                " VALUES ('qry_missing', 0, 'gpt5', 'text', 0.8, '[]')"
            )

    def test_write_transaction_rolls_back_on_error(self, tmp_path) -> None:
        db_path = tmp_path / "flex.db"
        init_schema(db_path)

        with connect(db_path) as conn:
            with pytest.raises(RuntimeError), write_transaction(conn):
                conn.execute(
                    "INSERT INTO usage_counters (caller_id, day, count) VALUES ('user-1', '2024-03-14', 1)"
                )
                raise RuntimeError("abort")
            count = conn.execute("SELECT COUNT(*) FROM usage_counters").fetchone()[0]

        assert count == 0
