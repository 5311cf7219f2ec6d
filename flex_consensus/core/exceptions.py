"""Custom exceptions for the consensus service.

All exceptions are namespaced to avoid shadowing Python builtins and derive
from FlexError so a single except clause can catch any service error.

Taxonomy:
- ProviderError: one provider call failed; always absorbed into a sentinel
  ProviderResult by the adapter, never surfaced to a caller.
- QuotaExceededError: caller is over the daily ceiling of their plan.
- OrchestrationFatalError: the fan-out itself could not run; the query is
  finalized as Failed.
- QueryNotFoundError: unknown query id on lookup.
"""

from datetime import datetime
from typing import Any


class FlexError(Exception):
    """Base exception for all service errors."""


# =============================================================================
# Provider errors
# =============================================================================

class ProviderError(FlexError):
    """Raised inside an adapter when a provider call fails.

    The `failure_class` becomes the reasoning tag of the sentinel result.
    """

    failure_class = "provider_error"

    def __init__(self, message: str, provider: str) -> None:
        """Initialize provider error.

        Args:
            message: Error description
            provider: Identifier of the provider that failed
        """
        self.provider = provider
        super().__init__(message)


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds its time bound."""

    failure_class = "timeout"

    def __init__(self, provider: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Provider '{provider}' did not answer within {timeout_seconds:g}s",
            provider,
        )


class ProviderHTTPError(ProviderError):
    """Raised when a provider answers with a non-2xx status."""

    failure_class = "http_status"

    def __init__(self, provider: str, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        message = f"Provider '{provider}' returned HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, provider)


class ProviderNetworkError(ProviderError):
    """Raised when a provider cannot be reached."""

    failure_class = "network_error"


class ProviderResponseError(ProviderError):
    """Raised when a provider payload does not have the expected shape."""

    failure_class = "malformed_response"


# =============================================================================
# Quota errors
# =============================================================================

class QuotaExceededError(FlexError):
    """Raised when a caller has used up the daily ceiling of their plan.

    Surfaced synchronously to the caller with the limit and the reset time.
    Nothing in the service retries.
    """

    def __init__(
        self,
        caller_id: str,
        plan_tier: str,
        limit: int,
        reset_at: datetime,
    ) -> None:
        """Initialize quota error.

        Args:
            caller_id: Caller that was rejected
            plan_tier: Plan tier used for the ceiling lookup
            limit: Daily ceiling of that tier
            reset_at: When the counter rolls over (next UTC midnight)
        """
        self.caller_id = caller_id
        self.plan_tier = plan_tier
        self.limit = limit
        self.reset_at = reset_at
        super().__init__(f"Daily limit of {limit} queries reached")


# =============================================================================
# Orchestration errors
# =============================================================================

class OrchestrationFatalError(FlexError):
    """Raised when a fan-out cannot run at all.

    Only an empty or unknown provider set, or unavailable scheduling, ends up
    here; individual provider failures never do.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        if cause:
            self.__cause__ = cause
        super().__init__(message)


class OrchestrationTimeoutError(OrchestrationFatalError):
    """Raised when the orchestration deadline passes before any result arrived."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"No provider answered within the orchestration deadline of {timeout_seconds:g}s"
        )


# =============================================================================
# Query lifecycle errors
# =============================================================================

class QueryNotFoundError(FlexError):
    """Raised when a query id is unknown (or not visible to the caller)."""

    def __init__(self, query_id: str) -> None:
        self.query_id = query_id
        super().__init__(f"Query '{query_id}' not found")


class InvalidQueryTransitionError(FlexError):
    """Raised when a terminal query is asked to change state again."""

    def __init__(self, query_id: str, current: str, requested: str) -> None:
        self.query_id = query_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Query '{query_id}' cannot move from {current} to {requested}"
        )


class QueryValidationError(FlexError):
    """Raised when a submission is structurally valid but not acceptable.

    Distinct from Python's built-in ValueError to provide structured error
    information for API responses.
    """

    def __init__(self, message: str, field: str, value: Any | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            field: The field that failed validation
            value: The invalid value
        """
        self.field = field
        self.value = value
        super().__init__(message)
