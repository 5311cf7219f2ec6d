"""SQLite-backed Query Lifecycle Store.

Queries and their provider results live in two tables; provider result rows
reference their query by foreign key. Each terminal transition is a single
conditional UPDATE (`WHERE status = 'processing'`) plus the result inserts,
all inside one transaction, so readers see the pre- or post-finalize state
only.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from pathlib import Path

from flex_consensus.consensus.models import Consensus, ProviderResult
from flex_consensus.core.database import connect, init_schema, write_transaction
from flex_consensus.core.exceptions import InvalidQueryTransitionError, QueryNotFoundError
from flex_consensus.queries.models import CallerStats, Query, QueryStatus, new_query_id
from flex_consensus.queries.store import DEFAULT_CALLER, DEFAULT_PAGE_SIZE, utc_now


logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 5


class SQLiteQueryStore:
    """Query store persisted to a SQLite file."""

    def __init__(
        self,
        db_path: str | Path,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db_path = Path(db_path)
        self._clock = clock
        init_schema(self.db_path)

    def create(
        self,
        question: str,
        providers: Iterable[str],
        rounds: int = 1,
        caller_id: str = DEFAULT_CALLER,
    ) -> Query:
        providers = tuple(providers)
        created_at = self._clock()
        with connect(self.db_path) as conn:
            for _ in range(_MAX_ID_ATTEMPTS):
                query_id = new_query_id()
                try:
                    conn.execute(
                        "INSERT INTO queries (id, caller_id, question, providers, rounds, status, created_at)"
                        " VALUES (?, ?, ?, ?, ?, ?, ?)",
                        (
                            query_id,
                            caller_id,
                            question,
                            json.dumps(list(providers)),
                            rounds,
                            QueryStatus.PROCESSING.value,
                            created_at.isoformat(),
                        ),
                    )
                    break
                except sqlite3.IntegrityError:
                    logger.warning("Query id collision on %s, retrying", query_id)
            else:
                raise RuntimeError("Could not allocate a unique query id")

        return Query(
            id=query_id,
            caller_id=caller_id,
            question=question,
            providers=providers,
            rounds=rounds,
            status=QueryStatus.PROCESSING,
            created_at=created_at,
        )

    def get(self, query_id: str) -> Query:
        with connect(self.db_path) as conn:
            # Deferred read transaction: both SELECTs see one snapshot
            conn.execute("BEGIN")
            try:
                row = conn.execute("SELECT * FROM queries WHERE id = ?", (query_id,)).fetchone()
                result_rows = conn.execute(
                    "SELECT * FROM provider_results WHERE query_id = ? ORDER BY position",
                    (query_id,),
                ).fetchall()
            finally:
                conn.execute("COMMIT")
        if row is None:
            raise QueryNotFoundError(query_id)
        return _row_to_query(row, result_rows)

    def finalize(
        self,
        query_id: str,
        results: Sequence[ProviderResult],
        consensus: Consensus,
        processing_time_ms: int | None = None,
    ) -> Query:
        completed_at = self._clock()
        with connect(self.db_path) as conn, write_transaction(conn):
            self._mark_terminal(
                conn,
                query_id,
                QueryStatus.COMPLETED,
                completed_at,
                processing_time_ms,
                consensus=json.dumps(consensus.to_dict()),
            )
            conn.executemany(
                "INSERT INTO provider_results"
                " (query_id, position, provider, response, confidence, reasoning, latency_ms)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        query_id,
                        position,
                        r.provider,
                        r.response,
                        r.confidence,
                        json.dumps(list(r.reasoning)),
                        r.latency_ms,
                    )
                    for position, r in enumerate(results)
                ],
            )
        return self.get(query_id)

    def fail(
        self,
        query_id: str,
        reason: str,
        processing_time_ms: int | None = None,
    ) -> Query:
        with connect(self.db_path) as conn, write_transaction(conn):
            self._mark_terminal(
                conn,
                query_id,
                QueryStatus.FAILED,
                self._clock(),
                processing_time_ms,
                error=reason,
            )
        return self.get(query_id)

    def list_for_caller(
        self,
        caller_id: str,
        status: QueryStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[Query], int]:
        where = "caller_id = ?"
        params: list[object] = [caller_id]
        if status is not None:
            where += " AND status = ?"
            params.append(status.value)

        with connect(self.db_path) as conn:
            total = conn.execute(f"SELECT COUNT(*) FROM queries WHERE {where}", params).fetchone()[0]
            ids = [
                row["id"]
                for row in conn.execute(
                    f"SELECT id FROM queries WHERE {where}"
                    " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?",
                    [*params, limit, offset],
                )
            ]
        return [self.get(query_id) for query_id in ids], total

    def stats_for_caller(self, caller_id: str) -> CallerStats:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total,"
                " SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed,"
                " SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) AS failed"
                " FROM queries WHERE caller_id = ?",
                (caller_id,),
            ).fetchone()
            consensus_rows = conn.execute(
                "SELECT consensus FROM queries WHERE caller_id = ? AND status = 'completed'",
                (caller_id,),
            ).fetchall()

        confidences = [json.loads(r["consensus"])["confidence"] for r in consensus_rows]
        average = math.fsum(confidences) / len(confidences) if confidences else 0.0
        return CallerStats(
            total_queries=row["total"] or 0,
            completed_queries=row["completed"] or 0,
            failed_queries=row["failed"] or 0,
            average_confidence=average,
        )

    @staticmethod
    def _mark_terminal(
        conn: sqlite3.Connection,
        query_id: str,
        status: QueryStatus,
        completed_at: datetime,
        processing_time_ms: int | None,
        consensus: str | None = None,
        error: str | None = None,
    ) -> None:
        cursor = conn.execute(
            "UPDATE queries SET status = ?, consensus = ?, error = ?,"
            " completed_at = ?, processing_time_ms = ?"
            " WHERE id = ? AND status = ?",
            (
                status.value,
                consensus,
                error,
                completed_at.isoformat(),
                processing_time_ms,
                query_id,
                QueryStatus.PROCESSING.value,
            ),
        )
        if cursor.rowcount == 1:
            return
        row = conn.execute("SELECT status FROM queries WHERE id = ?", (query_id,)).fetchone()
        if row is None:
            raise QueryNotFoundError(query_id)
        raise InvalidQueryTransitionError(query_id, row["status"], status.value)


def _row_to_query(row: sqlite3.Row, result_rows: Sequence[sqlite3.Row]) -> Query:
    consensus = Consensus.from_dict(json.loads(row["consensus"])) if row["consensus"] else None
    return Query(
        id=row["id"],
        caller_id=row["caller_id"],
        question=row["question"],
        providers=tuple(json.loads(row["providers"])),
        rounds=row["rounds"],
        status=QueryStatus(row["status"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        consensus=consensus,
        results=tuple(
            ProviderResult(
                provider=r["provider"],
                response=r["response"],
                confidence=r["confidence"],
                reasoning=tuple(json.loads(r["reasoning"])),
                latency_ms=r["latency_ms"],
            )
            for r in result_rows
        ),
        completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
        processing_time_ms=row["processing_time_ms"],
        error=row["error"],
    )


__all__ = ["SQLiteQueryStore"]
