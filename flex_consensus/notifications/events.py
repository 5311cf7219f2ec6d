"""Query lifecycle event models.

Implements:
- QueryCompletedEvent: terminal event carrying the consensus
- QueryFailedEvent: terminal event carrying the failure reason
- QueryStatusEvent: current-state snapshot sent first on an SSE stream
- SSE serialization for event streaming
"""

import json
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from flex_consensus.queries.models import Query, QueryStatus
from flex_consensus.queries.views import ConsensusView


def _now() -> datetime:
    return datetime.now(UTC)


def _frame(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class QueryCompletedEvent(BaseModel):
    """Emitted once when a query reaches COMPLETED.

    Attributes:
        event_type: Always "query_completed"
        query_id: Query identifier
        consensus: Consensus verdict
        timestamp: Event creation time
    """

    event_type: Literal["query_completed"] = Field(
        default="query_completed",
        description="Event type identifier",
    )
    query_id: str = Field(..., description="Query identifier")
    consensus: ConsensusView = Field(..., description="Consensus verdict")
    timestamp: datetime = Field(default_factory=_now, description="Event timestamp")

    @classmethod
    def from_query(cls, query: Query) -> "QueryCompletedEvent":
        if query.consensus is None:
            raise ValueError(f"Query '{query.id}' has no consensus")
        return cls(query_id=query.id, consensus=ConsensusView.from_domain(query.consensus))

    def to_sse(self) -> str:
        """Serialize event to SSE format."""
        return _frame(self.event_type, {
            "queryId": self.query_id,
            "status": QueryStatus.COMPLETED.value,
            "consensus": self.consensus.model_dump(by_alias=True),
            "timestamp": self.timestamp.isoformat(),
        })


class QueryFailedEvent(BaseModel):
    """Emitted once when a query reaches FAILED.

    Attributes:
        event_type: Always "query_failed"
        query_id: Query identifier
        error: Failure reason
        timestamp: Event creation time
    """

    event_type: Literal["query_failed"] = Field(
        default="query_failed",
        description="Event type identifier",
    )
    query_id: str = Field(..., description="Query identifier")
    error: str = Field(..., description="Failure reason")
    timestamp: datetime = Field(default_factory=_now, description="Event timestamp")

    def to_sse(self) -> str:
        """Serialize event to SSE format."""
        return _frame(self.event_type, {
            "queryId": self.query_id,
            "status": QueryStatus.FAILED.value,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        })


class QueryStatusEvent(BaseModel):
    """Snapshot of a query's current status (not a lifecycle transition)."""

    event_type: Literal["query_status"] = "query_status"
    query_id: str
    status: QueryStatus
    timestamp: datetime = Field(default_factory=_now)

    def to_sse(self) -> str:
        """Serialize event to SSE format."""
        return _frame(self.event_type, {
            "queryId": self.query_id,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        })


LifecycleEvent = QueryCompletedEvent | QueryFailedEvent


def terminal_event_for(query: Query) -> LifecycleEvent | None:
    """Lifecycle event matching a terminal query, None while processing."""
    if query.status is QueryStatus.COMPLETED:
        return QueryCompletedEvent.from_query(query)
    if query.status is QueryStatus.FAILED:
        return QueryFailedEvent(query_id=query.id, error=query.error or "Query failed")
    return None


__all__ = [
    "LifecycleEvent",
    "QueryCompletedEvent",
    "QueryFailedEvent",
    "QueryStatusEvent",
    "terminal_event_for",
]
