"""Per-caller usage statistics route.

GET /v1/user/stats returns today's quota usage together with the caller's
query history figures.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from flex_consensus.api.dependencies import Caller, get_caller, get_query_service
from flex_consensus.core.constants import API_PREFIX
from flex_consensus.queries.views import CamelModel
from flex_consensus.service import QueryService


router = APIRouter(
    prefix=f"{API_PREFIX}/user",
    tags=["Users"],
)


class UserStatsResponse(CamelModel):
    """Usage and history figures for the calling user."""

    plan: str
    today_queries: int
    daily_limit: int
    remaining_queries: int
    total_queries: int
    completed_queries: int
    failed_queries: int
    average_confidence: float


@router.get(
    "/stats",
    response_model=UserStatsResponse,
    summary="Caller usage statistics",
)
async def get_user_stats(
    caller: Caller = Depends(get_caller),
    service: QueryService = Depends(get_query_service),
) -> UserStatsResponse:
    """Return today's usage and overall query statistics for the caller."""
    stats = await service.user_stats(caller.caller_id, caller.plan_tier)
    return UserStatsResponse(
        plan=stats.usage.plan_tier,
        today_queries=stats.usage.used,
        daily_limit=stats.usage.limit,
        remaining_queries=stats.usage.remaining,
        total_queries=stats.history.total_queries,
        completed_queries=stats.history.completed_queries,
        failed_queries=stats.history.failed_queries,
        average_confidence=round(stats.history.average_confidence, 4),
    )


__all__ = ["router"]
