"""FastAPI dependencies.

Caller identity comes from headers set by the upstream authentication
gateway; services come from `app.state`, populated by the lifespan.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException, Request, status

from flex_consensus.core.constants import PlanTier
from flex_consensus.notifications.notifier import Notifier
from flex_consensus.service import QueryService


_MAX_CALLER_ID_LENGTH = 128


@dataclass(frozen=True, slots=True)
class Caller:
    """Authenticated caller as asserted by the gateway."""

    caller_id: str
    plan_tier: str


def get_caller(
    x_caller_id: str | None = Header(default=None, alias="X-Caller-Id"),
    x_plan_tier: str | None = Header(default=None, alias="X-Plan-Tier"),
) -> Caller:
    """Resolve the caller from trusted gateway headers.

    Raises:
        HTTPException: 401 if the caller header is missing or unusable
    """
    caller_id = (x_caller_id or "").strip()
    if not caller_id or len(caller_id) > _MAX_CALLER_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid X-Caller-Id header",
        )
    return Caller(
        caller_id=caller_id,
        plan_tier=(x_plan_tier or PlanTier.FREE.value).strip().lower(),
    )


def get_query_service(request: Request) -> QueryService:
    """QueryService created by the application lifespan."""
    return request.app.state.query_service


def get_notifier(request: Request) -> Notifier:
    """Notifier created by the application lifespan."""
    return request.app.state.notifier
