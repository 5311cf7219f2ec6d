"""Error handlers for API routes.

Provides a consistent ErrorResponse format across all API endpoints and maps
the service exception hierarchy to HTTP status codes:

- QueryValidationError / RequestValidationError -> 422
- QuotaExceededError -> 429 (with limit, resetAt and Retry-After)
- QueryNotFoundError -> 404
- InvalidQueryTransitionError -> 409
- anything else -> 500

Anti-Patterns Avoided:
- No bare except clauses
- Cognitive complexity < 15 per function
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from flex_consensus.core.exceptions import (
    InvalidQueryTransitionError,
    QueryNotFoundError,
    QueryValidationError,
    QuotaExceededError,
)


logger = logging.getLogger(__name__)


# Type alias for exception handler
ExceptionHandler = Callable[[Request, Exception], Awaitable[JSONResponse]]


# =============================================================================
# Error Response Model
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response model.

    Attributes:
        error: Error type/category
        detail: Human-readable error description
        code: Optional machine-readable error code
        path: Optional request path that caused the error
        limit: Daily ceiling (quota errors only)
        reset_at: When the quota resets (quota errors only)
    """

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(
        ...,
        description="Error type or category",
    )
    detail: str = Field(
        ...,
        description="Human-readable error description",
    )
    code: str | None = Field(
        default=None,
        description="Machine-readable error code",
    )
    path: str | None = Field(
        default=None,
        description="Request path that caused the error",
    )
    limit: int | None = Field(
        default=None,
        description="Daily query ceiling of the caller's plan",
    )
    reset_at: datetime | None = Field(
        default=None,
        alias="resetAt",
        description="When the daily quota resets (UTC)",
    )


def _render(status_code: int, body: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=headers,
    )


# =============================================================================
# Exception Handlers
# =============================================================================

async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handle HTTPException with ErrorResponse schema."""
    error_type = {
        400: "BadRequest",
        401: "Unauthorized",
        403: "Forbidden",
        404: "NotFound",
        422: "ValidationError",
        429: "QuotaExceeded",
        500: "InternalServerError",
        503: "ServiceUnavailable",
    }.get(exc.status_code, "Error")

    return _render(
        exc.status_code,
        ErrorResponse(
            error=error_type,
            detail=str(exc.detail),
            path=str(request.url.path),
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic request validation errors.

    Args:
        request: FastAPI request object
        exc: RequestValidationError raised

    Returns:
        JSONResponse with ErrorResponse format and field details
    """
    field_errors = []
    for error in exc.errors():
        loc = ".".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        field_errors.append(f"{loc}: {msg}")

    detail = "; ".join(field_errors) if field_errors else "Validation error"

    return _render(
        422,
        ErrorResponse(
            error="ValidationError",
            detail=detail,
            code="VALIDATION_ERROR",
            path=str(request.url.path),
        ),
    )


async def query_validation_handler(
    request: Request,
    exc: QueryValidationError,
) -> JSONResponse:
    """Handle QueryValidationError raised by the query service."""
    return _render(
        422,
        ErrorResponse(
            error="ValidationError",
            detail=f"{exc.field}: {exc}",
            code="VALIDATION_ERROR",
            path=str(request.url.path),
        ),
    )


async def quota_exceeded_handler(
    request: Request,
    exc: QuotaExceededError,
) -> JSONResponse:
    """Handle QuotaExceededError.

    Returns:
        JSONResponse with 429 status, the plan limit and the reset time
    """
    retry_after = max(0, math.ceil((exc.reset_at - datetime.now(UTC)).total_seconds()))
    return _render(
        429,
        ErrorResponse(
            error="QuotaExceeded",
            detail=f"{exc} for plan '{exc.plan_tier}'; upgrade or retry after reset",
            code="QUOTA_EXCEEDED",
            path=str(request.url.path),
            limit=exc.limit,
            reset_at=exc.reset_at,
        ),
        headers={"Retry-After": str(retry_after)},
    )


async def query_not_found_handler(
    request: Request,
    exc: QueryNotFoundError,
) -> JSONResponse:
    """Handle QueryNotFoundError."""
    return _render(
        404,
        ErrorResponse(
            error="NotFound",
            detail=str(exc),
            code="QUERY_NOT_FOUND",
            path=str(request.url.path),
        ),
    )


async def invalid_transition_handler(
    request: Request,
    exc: InvalidQueryTransitionError,
) -> JSONResponse:
    """Handle InvalidQueryTransitionError."""
    return _render(
        409,
        ErrorResponse(
            error="Conflict",
            detail=str(exc),
            code="INVALID_TRANSITION",
            path=str(request.url.path),
        ),
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={
            "path": str(request.url.path),
            "error_type": type(exc).__name__,
        },
    )

    return _render(
        500,
        ErrorResponse(
            error="InternalServerError",
            detail="An unexpected error occurred",
            code="INTERNAL_ERROR",
            path=str(request.url.path),
        ),
    )


# =============================================================================
# Registration Function
# =============================================================================

def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(
        HTTPException,
        http_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        QueryValidationError,
        query_validation_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        QuotaExceededError,
        quota_exceeded_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        QueryNotFoundError,
        query_not_found_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        InvalidQueryTransitionError,
        invalid_transition_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        Exception,
        generic_exception_handler,
    )


__all__ = [
    "ErrorResponse",
    "register_error_handlers",
]
