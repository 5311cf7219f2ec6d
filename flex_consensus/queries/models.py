"""Query lifecycle models.

Implements:
- QueryStatus: lifecycle state enum (processing, completed, failed)
- Query: immutable snapshot of one submitted question
- CallerStats: per-caller aggregate for the stats endpoint
- new_query_id(): `qry_<epoch-ms>_<16 hex chars>` identifiers
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from flex_consensus.consensus.models import Consensus, ProviderResult


_QUERY_ID_PREFIX = "qry"
_QUERY_ID_RANDOM_BYTES = 8


class QueryStatus(str, Enum):
    """Lifecycle state of a query.

    Transitions are one-directional: PROCESSING -> COMPLETED | FAILED.
    """

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not QueryStatus.PROCESSING


def new_query_id() -> str:
    """Generate an opaque, unique query identifier."""
    millis = int(time.time() * 1000)
    return f"{_QUERY_ID_PREFIX}_{millis}_{secrets.token_hex(_QUERY_ID_RANDOM_BYTES)}"


@dataclass(frozen=True, slots=True)
class Query:
    """Snapshot of a submitted query.

    Stores replace whole snapshots on transition, so a reader holds either
    the pre-finalize or the fully finalized state.

    Attributes:
        id: Query identifier
        caller_id: Owner of the query
        question: Submitted question text
        providers: Requested provider ids, in request order
        rounds: Requested round count
        status: Lifecycle state
        created_at: Submission time (UTC)
        consensus: Consensus verdict, present iff status is COMPLETED
        results: Provider results, recorded on completion
        completed_at: Time of the terminal transition
        processing_time_ms: Duration of background processing
        error: Failure reason, present iff status is FAILED
    """

    id: str
    caller_id: str
    question: str
    providers: tuple[str, ...]
    rounds: int
    status: QueryStatus
    created_at: datetime
    consensus: Consensus | None = None
    results: tuple[ProviderResult, ...] = field(default_factory=tuple)
    completed_at: datetime | None = None
    processing_time_ms: int | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.consensus is not None) != (self.status is QueryStatus.COMPLETED):
            raise ValueError("consensus must be present exactly when the query is completed")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "caller_id": self.caller_id,
            "question": self.question,
            "providers": list(self.providers),
            "rounds": self.rounds,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "consensus": self.consensus.to_dict() if self.consensus else None,
            "results": [r.to_dict() for r in self.results],
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "processing_time_ms": self.processing_time_ms,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class CallerStats:
    """Aggregate query figures for one caller.

    Attributes:
        total_queries: Every query the caller ever submitted
        completed_queries: Queries that reached COMPLETED
        failed_queries: Queries that reached FAILED
        average_confidence: Mean consensus confidence of completed queries
    """

    total_queries: int = 0
    completed_queries: int = 0
    failed_queries: int = 0
    average_confidence: float = 0.0
