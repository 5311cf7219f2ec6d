"""Caller-facing views of queries, results and consensus.

Pydantic models with camelCase aliases, shared by the HTTP routes and the
SSE event payloads.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flex_consensus.consensus.models import Consensus, ProviderResult
from flex_consensus.queries.models import Query, QueryStatus


class CamelModel(BaseModel):
    """Base model serializing field names in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConsensusView(CamelModel):
    """Consensus verdict as shown to callers."""

    summary: str = Field(..., description="Consensus summary")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Aggregate confidence")
    convergence_points: list[str] = Field(default_factory=list)
    divergence_points: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, consensus: Consensus) -> ConsensusView:
        return cls(
            summary=consensus.summary,
            confidence=consensus.confidence,
            convergence_points=list(consensus.convergence_points),
            divergence_points=list(consensus.divergence_points),
        )


class ProviderResultView(CamelModel):
    """One provider's answer as shown to callers."""

    response: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: list[str] = Field(default_factory=list)
    latency_ms: int = 0

    @classmethod
    def from_domain(cls, result: ProviderResult) -> ProviderResultView:
        return cls(
            response=result.response,
            confidence=result.confidence,
            reasoning=list(result.reasoning),
            latency_ms=result.latency_ms,
        )


class QueryResultView(CamelModel):
    """Full result of one query."""

    query_id: str
    status: QueryStatus
    question: str
    providers: list[str] = Field(default_factory=list)
    rounds: int = 1
    consensus: ConsensusView | None = None
    provider_results: dict[str, ProviderResultView] = Field(default_factory=dict)
    processing_time_ms: int | None = None
    created_at: datetime
    completed_at: datetime | None = None
    error: str | None = None

    @classmethod
    def from_domain(cls, query: Query) -> QueryResultView:
        return cls(
            query_id=query.id,
            status=query.status,
            question=query.question,
            providers=list(query.providers),
            rounds=query.rounds,
            consensus=ConsensusView.from_domain(query.consensus) if query.consensus else None,
            provider_results={
                r.provider: ProviderResultView.from_domain(r) for r in query.results
            },
            processing_time_ms=query.processing_time_ms,
            created_at=query.created_at,
            completed_at=query.completed_at,
            error=query.error,
        )


class QuerySummaryView(CamelModel):
    """Compact listing entry for one query."""

    query_id: str
    question: str
    status: QueryStatus
    confidence: float | None = None
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, query: Query) -> QuerySummaryView:
        return cls(
            query_id=query.id,
            question=query.question,
            status=query.status,
            confidence=query.consensus.confidence if query.consensus else None,
            created_at=query.created_at,
            completed_at=query.completed_at,
        )
