"""Query API routes.

Endpoints:
- POST /v1/queries/submit - admit a question for background processing (202)
- GET /v1/queries - list the caller's queries, newest first
- GET /v1/queries/{query_id}/results - full result of one query
- GET /v1/queries/{query_id}/events - SSE stream of the query lifecycle

Anti-Patterns Avoided:
- No bare except clauses
- Cognitive complexity < 15 per function
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, status
from fastapi import Query as QueryParam
from fastapi.responses import StreamingResponse
from pydantic import Field

from flex_consensus.api.dependencies import Caller, get_caller, get_notifier, get_query_service
from flex_consensus.core.constants import (
    API_PREFIX,
    DEFAULT_ROUNDS,
    QUESTION_MAX_LENGTH,
    QUESTION_MIN_LENGTH,
    Timeouts,
)
from flex_consensus.notifications.events import QueryStatusEvent, terminal_event_for
from flex_consensus.notifications.notifier import Notifier
from flex_consensus.queries.models import QueryStatus
from flex_consensus.queries.views import CamelModel, QueryResultView, QuerySummaryView
from flex_consensus.service import QueryService


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix=f"{API_PREFIX}/queries",
    tags=["Queries"],
)

_MAX_PAGE_SIZE = 100


# =============================================================================
# Request/Response Models
# =============================================================================

class SubmitQueryRequest(CamelModel):
    """Body of a query submission."""

    question: str = Field(
        ...,
        min_length=QUESTION_MIN_LENGTH,
        max_length=QUESTION_MAX_LENGTH,
        description="Natural-language question",
    )
    providers: list[str] | None = Field(
        default=None,
        description="Provider ids to ask; all known providers when omitted",
    )
    rounds: int = Field(
        default=DEFAULT_ROUNDS,
        ge=1,
        description="Requested debate rounds (only round 1 is executed)",
    )


class DailyUsage(CamelModel):
    used: int
    limit: int


class SubmitQueryResponse(CamelModel):
    """Synchronous acknowledgement of an admitted submission."""

    query_id: str
    status: QueryStatus
    estimated_seconds: int
    remaining_quota: int
    daily_usage: DailyUsage


class Pagination(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class QueryListResponse(CamelModel):
    queries: list[QuerySummaryView]
    pagination: Pagination


# =============================================================================
# API Endpoints
# =============================================================================

@router.post(
    "/submit",
    response_model=SubmitQueryResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a question",
    description="Admits the question against the caller's daily quota and processes it in the background.",
)
async def submit_query(
    body: SubmitQueryRequest,
    caller: Caller = Depends(get_caller),
    service: QueryService = Depends(get_query_service),
) -> SubmitQueryResponse:
    """Submit a question for multi-provider consensus.

    Raises:
        QueryValidationError: 422 on unusable input
        QuotaExceededError: 429 when the daily limit is reached
    """
    receipt = await service.submit(
        caller_id=caller.caller_id,
        plan_tier=caller.plan_tier,
        question=body.question,
        providers=body.providers,
        rounds=body.rounds,
    )
    return SubmitQueryResponse(
        query_id=receipt.query.id,
        status=receipt.query.status,
        estimated_seconds=receipt.estimated_seconds,
        remaining_quota=receipt.remaining_quota,
        daily_usage=DailyUsage(used=receipt.daily_used, limit=receipt.daily_limit),
    )


@router.get(
    "",
    response_model=QueryListResponse,
    summary="List queries",
)
async def list_queries(
    status_filter: QueryStatus | None = QueryParam(default=None, alias="status"),
    limit: int = QueryParam(default=20, ge=1, le=_MAX_PAGE_SIZE),
    offset: int = QueryParam(default=0, ge=0),
    caller: Caller = Depends(get_caller),
    service: QueryService = Depends(get_query_service),
) -> QueryListResponse:
    """List the caller's queries, newest first."""
    queries, total = await service.list_queries(
        caller.caller_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return QueryListResponse(
        queries=[QuerySummaryView.from_domain(q) for q in queries],
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(queries) < total,
        ),
    )


@router.get(
    "/{query_id}/results",
    response_model=QueryResultView,
    summary="Get query results",
)
async def get_query_results(
    query_id: str,
    caller: Caller = Depends(get_caller),
    service: QueryService = Depends(get_query_service),
) -> QueryResultView:
    """Return the current state of a query, with consensus once completed.

    Raises:
        QueryNotFoundError: 404 if unknown or owned by another caller
    """
    return QueryResultView.from_domain(await service.get_result(caller.caller_id, query_id))


@router.get(
    "/{query_id}/events",
    summary="Stream query lifecycle events",
    description="Server-Sent Events: a status snapshot, then the terminal event.",
)
async def stream_query_events(
    query_id: str,
    caller: Caller = Depends(get_caller),
    service: QueryService = Depends(get_query_service),
    notifier: Notifier = Depends(get_notifier),
) -> StreamingResponse:
    """Stream the lifecycle of one query via SSE.

    The subscription is registered before the current state is read, so a
    terminal event published in between is either seen in the store or
    delivered to the subscription.

    Raises:
        QueryNotFoundError: 404 if unknown or owned by another caller
    """
    subscription = notifier.subscribe(query_id)
    try:
        query = await service.get_result(caller.caller_id, query_id)
    except Exception:
        subscription.close()
        raise

    async def event_generator() -> AsyncGenerator[str, None]:
        """Yield SSE frames until the terminal event."""
        try:
            yield QueryStatusEvent(query_id=query.id, status=query.status).to_sse()

            terminal = terminal_event_for(query)
            if terminal is None:
                terminal = await subscription.next_event(timeout=Timeouts.EVENT_STREAM)
            if terminal is None:
                terminal = terminal_event_for(await service.get_result(caller.caller_id, query_id))
            if terminal is not None:
                yield terminal.to_sse()
        finally:
            subscription.close()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


__all__ = ["router"]
