"""Core module - Configuration, logging, HTTP client, persistence helpers.

Exports:
    - Settings, get_settings: Pydantic Settings configuration
    - configure_logging, get_logger: Structured logging (structlog)
    - HTTPClientFactory: shared provider HTTP client
    - PlanTier, ProviderName, Timeouts: service constants
    - Exception classes: FlexError, ProviderError, QuotaExceededError, etc.
"""

from flex_consensus.core.config import Settings, get_settings
from flex_consensus.core.constants import (
    API_PREFIX,
    API_VERSION,
    DEFAULT_PLAN_LIMITS,
    DEFAULT_PROVIDERS,
    PlanTier,
    ProviderName,
    Timeouts,
)
from flex_consensus.core.exceptions import (
    FlexError,
    InvalidQueryTransitionError,
    OrchestrationFatalError,
    OrchestrationTimeoutError,
    ProviderError,
    ProviderHTTPError,
    ProviderNetworkError,
    ProviderResponseError,
    ProviderTimeoutError,
    QueryNotFoundError,
    QueryValidationError,
    QuotaExceededError,
)
from flex_consensus.core.http import HTTPClientFactory
from flex_consensus.core.logging import configure_logging, get_logger


__all__ = [
    "API_PREFIX",
    "API_VERSION",
    "DEFAULT_PLAN_LIMITS",
    "DEFAULT_PROVIDERS",
    "FlexError",
    "HTTPClientFactory",
    "InvalidQueryTransitionError",
    "OrchestrationFatalError",
    "OrchestrationTimeoutError",
    "PlanTier",
    "ProviderError",
    "ProviderHTTPError",
    "ProviderName",
    "ProviderNetworkError",
    "ProviderResponseError",
    "ProviderTimeoutError",
    "QueryNotFoundError",
    "QueryValidationError",
    "QuotaExceededError",
    "Settings",
    "Timeouts",
    "configure_logging",
    "get_logger",
    "get_settings",
]
