"""Health check API routes.

Provides REST API endpoints for health monitoring and liveness checks.
Provider "dependencies" are reported by configuration state only; no
upstream call is made from a health probe.

Anti-Patterns Avoided:
- No bare except clauses
- Cognitive complexity < 15 per function
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from enum import Enum

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from flex_consensus.core.config import get_settings


# =============================================================================
# Router Configuration
# =============================================================================

router = APIRouter(
    prefix="/health",
    tags=["Health"],
)


# =============================================================================
# Enums and Constants
# =============================================================================

class HealthStatus(str, Enum):
    """Health status enum."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ProviderState(str, Enum):
    """Provider configuration state."""

    CONFIGURED = "configured"
    MISSING_KEY = "missing_key"


SERVICE_VERSION = os.environ.get("SERVICE_VERSION", "0.1.0")


# =============================================================================
# Response Models
# =============================================================================

class ProviderHealth(BaseModel):
    """Configuration state of one provider.

    Attributes:
        name: Provider id
        status: Whether the provider can be called
    """

    name: str = Field(..., description="Provider id")
    status: ProviderState = Field(..., description="Configuration state")


class HealthResponse(BaseModel):
    """Response model for health check.

    Attributes:
        status: Overall service status
        service: Service name
        version: Service version
        timestamp: Check timestamp (ISO format)
        uptime_seconds: Service uptime in seconds
        pending_queries: Queries currently processing in the background
        providers: Configuration state of each provider
    """

    status: HealthStatus = Field(
        default=HealthStatus.HEALTHY,
        description="Overall service status",
    )
    service: str = Field(..., description="Service name")
    version: str = Field(default=SERVICE_VERSION, description="Service version")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="Check timestamp",
    )
    uptime_seconds: float | None = Field(
        default=None,
        description="Service uptime in seconds",
    )
    pending_queries: int = Field(default=0, description="Queries being processed")
    providers: list[ProviderHealth] = Field(
        default_factory=list,
        description="Provider configuration state",
    )


class LivenessResponse(BaseModel):
    """Response model for liveness check."""

    alive: bool = Field(default=True, description="Whether service is alive")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
        description="Check timestamp",
    )


# =============================================================================
# Service Start Time
# =============================================================================

_service_start_time: datetime | None = None


def set_service_start_time(start_time: datetime | None = None) -> None:
    """Set the service start time for uptime calculation.

    Args:
        start_time: Service start time, defaults to now
    """
    global _service_start_time
    _service_start_time = start_time or datetime.now(UTC)


def get_uptime_seconds() -> float | None:
    """Get service uptime in seconds, or None if start time not set."""
    if _service_start_time is None:
        return None
    return (datetime.now(UTC) - _service_start_time).total_seconds()


# =============================================================================
# Provider Checks
# =============================================================================

def collect_provider_health(adapters: dict) -> list[ProviderHealth]:
    """Report each adapter's configuration state.

    Adapters without an `is_configured` attribute count as configured.
    """
    return [
        ProviderHealth(
            name=name,
            status=(
                ProviderState.CONFIGURED
                if getattr(adapter, "is_configured", True)
                else ProviderState.MISSING_KEY
            ),
        )
        for name, adapter in adapters.items()
    ]


def calculate_overall_status(providers: list[ProviderHealth]) -> HealthStatus:
    """Healthy when every provider is configured, unhealthy when none is."""
    if not providers:
        return HealthStatus.UNHEALTHY
    configured = sum(1 for p in providers if p.status == ProviderState.CONFIGURED)
    if configured == len(providers):
        return HealthStatus.HEALTHY
    if configured == 0:
        return HealthStatus.UNHEALTHY
    return HealthStatus.DEGRADED


# =============================================================================
# API Endpoints
# =============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns service status with provider configuration state.",
)
async def health_check(request: Request) -> HealthResponse:
    """Comprehensive health check endpoint."""
    adapters = getattr(request.app.state, "adapters", {})
    worker = getattr(request.app.state, "worker", None)
    settings = getattr(request.app.state, "settings", None) or get_settings()
    providers = collect_provider_health(adapters)

    return HealthResponse(
        status=calculate_overall_status(providers),
        service=settings.service_name,
        uptime_seconds=get_uptime_seconds(),
        pending_queries=worker.pending if worker is not None else 0,
        providers=providers,
    )


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness check",
)
async def liveness_check() -> LivenessResponse:
    """Kubernetes-style liveness probe."""
    return LivenessResponse(alive=True)


__all__ = ["router", "set_service_start_time"]
