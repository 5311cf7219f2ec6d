"""Query Lifecycle Store - protocol and in-memory implementation.

Implements:
- Query creation with unique IDs (status PROCESSING)
- Retrieval by ID
- One-way terminal transitions (finalize / fail)
- Per-caller listing (newest first) and statistics
- Thread-safe operations using threading.Lock

Snapshots are immutable and replaced whole under the lock, so concurrent
readers never see a partially written consensus.
"""

from __future__ import annotations

import dataclasses
import math
import threading
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from flex_consensus.consensus.models import Consensus, ProviderResult
from flex_consensus.core.exceptions import InvalidQueryTransitionError, QueryNotFoundError
from flex_consensus.queries.models import CallerStats, Query, QueryStatus, new_query_id


DEFAULT_CALLER = "anonymous"
DEFAULT_PAGE_SIZE = 20


def utc_now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# QueryStore Protocol
# =============================================================================


@runtime_checkable
class QueryStore(Protocol):
    """Owner of the query state machine and its persisted results."""

    def create(
        self,
        question: str,
        providers: Iterable[str],
        rounds: int = 1,
        caller_id: str = DEFAULT_CALLER,
    ) -> Query:
        """Create a query in PROCESSING state."""
        ...

    def get(self, query_id: str) -> Query:
        """Return the current snapshot or raise QueryNotFoundError."""
        ...

    def finalize(
        self,
        query_id: str,
        results: Sequence[ProviderResult],
        consensus: Consensus,
        processing_time_ms: int | None = None,
    ) -> Query:
        """Move a PROCESSING query to COMPLETED."""
        ...

    def fail(
        self,
        query_id: str,
        reason: str,
        processing_time_ms: int | None = None,
    ) -> Query:
        """Move a PROCESSING query to FAILED."""
        ...

    def list_for_caller(
        self,
        caller_id: str,
        status: QueryStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[Query], int]:
        """Return one page of the caller's queries (newest first) and the total."""
        ...

    def stats_for_caller(self, caller_id: str) -> CallerStats:
        """Aggregate figures over the caller's queries."""
        ...


def compute_stats(queries: Iterable[Query]) -> CallerStats:
    """Aggregate a caller's queries into CallerStats."""
    total = completed = failed = 0
    confidences: list[float] = []
    for query in queries:
        total += 1
        if query.status is QueryStatus.COMPLETED and query.consensus is not None:
            completed += 1
            confidences.append(query.consensus.confidence)
        elif query.status is QueryStatus.FAILED:
            failed += 1
    average = math.fsum(confidences) / len(confidences) if confidences else 0.0
    return CallerStats(
        total_queries=total,
        completed_queries=completed,
        failed_queries=failed,
        average_confidence=average,
    )


# =============================================================================
# InMemoryQueryStore
# =============================================================================


class InMemoryQueryStore:
    """In-memory query storage with thread-safe lifecycle operations.

    Attributes:
        _queries: Internal dictionary mapping query IDs to snapshots
        _lock: Threading lock for thread-safe operations
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        """Initialize empty store with thread lock.

        Args:
            clock: Source of timestamps (UTC).
        """
        self._queries: dict[str, Query] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def create(
        self,
        question: str,
        providers: Iterable[str],
        rounds: int = 1,
        caller_id: str = DEFAULT_CALLER,
    ) -> Query:
        query = Query(
            id=new_query_id(),
            caller_id=caller_id,
            question=question,
            providers=tuple(providers),
            rounds=rounds,
            status=QueryStatus.PROCESSING,
            created_at=self._clock(),
        )
        with self._lock:
            while query.id in self._queries:
                query = dataclasses.replace(query, id=new_query_id())
            self._queries[query.id] = query
        return query

    def get(self, query_id: str) -> Query:
        with self._lock:
            query = self._queries.get(query_id)
        if query is None:
            raise QueryNotFoundError(query_id)
        return query

    def finalize(
        self,
        query_id: str,
        results: Sequence[ProviderResult],
        consensus: Consensus,
        processing_time_ms: int | None = None,
    ) -> Query:
        return self._transition(
            query_id,
            QueryStatus.COMPLETED,
            consensus=consensus,
            results=tuple(results),
            processing_time_ms=processing_time_ms,
        )

    def fail(
        self,
        query_id: str,
        reason: str,
        processing_time_ms: int | None = None,
    ) -> Query:
        return self._transition(
            query_id,
            QueryStatus.FAILED,
            error=reason,
            processing_time_ms=processing_time_ms,
        )

    def list_for_caller(
        self,
        caller_id: str,
        status: QueryStatus | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[Query], int]:
        with self._lock:
            owned = [
                q for q in self._queries.values()
                if q.caller_id == caller_id and (status is None or q.status is status)
            ]
        # Insertion order breaks ties between identical timestamps
        owned.reverse()
        owned.sort(key=lambda q: q.created_at, reverse=True)
        return owned[offset:offset + limit], len(owned)

    def stats_for_caller(self, caller_id: str) -> CallerStats:
        with self._lock:
            owned = [q for q in self._queries.values() if q.caller_id == caller_id]
        return compute_stats(owned)

    def _transition(self, query_id: str, status: QueryStatus, **changes: object) -> Query:
        with self._lock:
            current = self._queries.get(query_id)
            if current is None:
                raise QueryNotFoundError(query_id)
            if current.is_terminal:
                raise InvalidQueryTransitionError(query_id, current.status.value, status.value)
            updated = dataclasses.replace(
                current,
                status=status,
                completed_at=self._clock(),
                **changes,
            )
            self._queries[query_id] = updated
        return updated


__all__ = [
    "DEFAULT_CALLER",
    "InMemoryQueryStore",
    "QueryStore",
    "compute_stats",
    "utc_now",
]
