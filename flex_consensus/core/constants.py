"""Service constants and default configuration values.

Provides centralized constants for:
- Provider identifiers
- Plan tiers and their default daily ceilings
- Default timeout values
- Submission limits
"""

from enum import Enum


# =============================================================================
# Provider Identifiers
# =============================================================================

class ProviderName(str, Enum):
    """Identifiers of the external reasoning providers.

    The values are the ids callers use in the `providers` field of a
    submission and the keys of `providerResults` in a result view.
    """
    GPT5 = "gpt5"
    CLAUDE = "claude"
    GEMINI = "gemini"
    GROK = "grok"


DEFAULT_PROVIDERS: tuple[str, ...] = tuple(p.value for p in ProviderName)


# =============================================================================
# Plan Tiers
# =============================================================================

class PlanTier(str, Enum):
    """Subscription tiers with distinct daily query ceilings."""
    FREE = "free"
    PRO = "pro"
    RESEARCHER = "researcher"
    GUARDIAN = "guardian"


DEFAULT_PLAN_LIMITS: dict[str, int] = {
    PlanTier.FREE.value: 10,
    PlanTier.PRO.value: 100,
    PlanTier.RESEARCHER.value: 500,
    PlanTier.GUARDIAN.value: 999_999,
}


# =============================================================================
# Default Timeout Values
# =============================================================================

class Timeouts:
    """Default timeout values in seconds.

    These can be overridden via Settings.
    """
    PROVIDER_CALL: float = 30.0
    ORCHESTRATION: float = 90.0
    HTTP_CONNECT: float = 5.0
    WORKER_SHUTDOWN: float = 10.0
    EVENT_STREAM: float = 300.0


# =============================================================================
# Submission Limits
# =============================================================================

QUESTION_MIN_LENGTH = 10
QUESTION_MAX_LENGTH = 1000
DEFAULT_ROUNDS = 1

API_VERSION = "v1"
API_PREFIX = f"/{API_VERSION}"
