"""Plan policy - static mapping of plan tier to daily query ceiling."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from flex_consensus.core.constants import DEFAULT_PLAN_LIMITS, PlanTier


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlanPolicy:
    """Daily ceilings per plan tier.

    Unknown tiers fall back to the free tier's ceiling.

    Attributes:
        limits: Read-only mapping of tier name to daily ceiling
        fallback_tier: Tier used for unknown names
    """

    limits: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_PLAN_LIMITS))
    )
    fallback_tier: str = PlanTier.FREE.value

    def __post_init__(self) -> None:
        limits = {tier.lower(): int(limit) for tier, limit in self.limits.items()}
        if self.fallback_tier not in limits:
            raise ValueError(f"fallback tier '{self.fallback_tier}' has no limit")
        negative = [tier for tier, limit in limits.items() if limit < 0]
        if negative:
            raise ValueError(f"negative daily limit for tier(s): {', '.join(negative)}")
        object.__setattr__(self, "limits", MappingProxyType(limits))

    def resolve_tier(self, plan_tier: str | None) -> str:
        """Normalize a tier name, mapping unknown names to the fallback."""
        tier = (plan_tier or "").strip().lower()
        if tier in self.limits:
            return tier
        logger.debug("Unknown plan tier %r, using %s", plan_tier, self.fallback_tier)
        return self.fallback_tier

    def limit_for(self, plan_tier: str | None) -> int:
        """Daily ceiling for a tier."""
        return self.limits[self.resolve_tier(plan_tier)]
