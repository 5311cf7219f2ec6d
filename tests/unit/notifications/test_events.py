"""Tests for lifecycle event models and SSE framing."""

import json
from datetime import UTC, datetime

import pytest

from flex_consensus.consensus.models import Consensus
from flex_consensus.notifications.events import (
    QueryCompletedEvent,
    QueryFailedEvent,
    QueryStatusEvent,
    terminal_event_for,
)
from flex_consensus.queries.models import Query, QueryStatus


_TEST_CREATED = datetime(2024, 3, 14, 12, 0, tzinfo=UTC)
_TEST_CONSENSUS = Consensus(
    summary="Based on analysis from 2 providers, the consensus indicates: yes.",
    confidence=0.85,
    convergence_points=("Both agree",),
    divergence_points=("Lengths differ",),
    contributing_providers=2,
)


def _query(status: QueryStatus, **kwargs) -> Query:
    return Query(
        id="qry_1_abc",
        caller_id="user-1",
        question="Is the sky blue on a clear day?",
        providers=("gpt5", "claude"),
        rounds=1,
        status=status,
        created_at=_TEST_CREATED,
        **kwargs,
    )


def _parse_sse(frame: str) -> tuple[str, dict]:
    assert frame.endswith("\n\n")
    event_line, data_line = frame.strip().split("\n")
    assert event_line.startswith("event: ")
    assert data_line.startswith("data: ")
    return event_line[len("event: "):], json.loads(data_line[len("data: "):])


class TestQueryCompletedEvent:
    """Tests for the completion event."""

    def test_from_query(self) -> None:
        event = QueryCompletedEvent.from_query(_query(QueryStatus.COMPLETED, consensus=_TEST_CONSENSUS))

        assert event.event_type == "query_completed"
        assert event.consensus.confidence == 0.85

    def test_from_query_without_consensus(self) -> None:
        with pytest.raises(ValueError):
            QueryCompletedEvent.from_query(_query(QueryStatus.PROCESSING))

    def test_sse_frame(self) -> None:
        event = QueryCompletedEvent.from_query(_query(QueryStatus.COMPLETED, consensus=_TEST_CONSENSUS))

        name, data = _parse_sse(event.to_sse())

        assert name == "query_completed"
        assert data["queryId"] == "qry_1_abc"
        assert data["status"] == "completed"
        assert data["consensus"]["convergencePoints"] == ["Both agree"]
        assert data["consensus"]["divergencePoints"] == ["Lengths differ"]
        assert "timestamp" in data


class TestQueryFailedEvent:
    """Tests for the failure event."""

    def test_sse_frame(self) -> None:
        event = QueryFailedEvent(query_id="qry_1_abc", error="No providers specified")

        name, data = _parse_sse(event.to_sse())

        assert name == "query_failed"
        assert data["status"] == "failed"
        assert data["error"] == "No providers specified"


class TestQueryStatusEvent:
    """Tests for the status snapshot."""

    def test_sse_frame(self) -> None:
        name, data = _parse_sse(
            QueryStatusEvent(query_id="qry_1_abc", status=QueryStatus.PROCESSING).to_sse()
        )

        assert name == "query_status"
        assert data["status"] == "processing"


class TestTerminalEventFor:
    """Tests for terminal_event_for()."""

    def test_processing_has_no_event(self) -> None:
        assert terminal_event_for(_query(QueryStatus.PROCESSING)) is None

    def test_completed(self) -> None:
        event = terminal_event_for(_query(QueryStatus.COMPLETED, consensus=_TEST_CONSENSUS))

        assert isinstance(event, QueryCompletedEvent)

    def test_failed(self) -> None:
        event = terminal_event_for(_query(QueryStatus.FAILED, error="boom"))

        assert isinstance(event, QueryFailedEvent)
        assert event.error == "boom"
