"""Quota Tracker - per-caller daily admission against a plan ceiling.

`admit()` is a single atomic increment-with-ceiling on the backing store, so
concurrent submissions from one caller can never both take the last slot.
The day boundary is the UTC calendar date for every caller.

Example:
    >>> tracker = QuotaTracker(PlanPolicy(), InMemoryUsageStore())
    >>> decision = tracker.admit("user-7", "free")
    >>> decision.remaining
    9
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from flex_consensus.core.exceptions import QuotaExceededError
from flex_consensus.quota.policy import PlanPolicy
from flex_consensus.quota.stores import UsageStore


logger = logging.getLogger(__name__)


# =============================================================================
# Decisions
# =============================================================================


@dataclass(frozen=True, slots=True)
class Admitted:
    """Submission admitted; the day's counter was incremented."""

    remaining: int
    limit: int
    used: int

    @property
    def admitted(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Rejected:
    """Submission rejected; the counter is unchanged."""

    limit: int
    used: int
    reset_at: datetime

    @property
    def admitted(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """Today's usage for one caller."""

    day: date
    used: int
    limit: int
    plan_tier: str

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)


def next_utc_midnight(now: datetime) -> datetime:
    """Start of the next UTC calendar day after `now`."""
    today = now.astimezone(UTC).date()
    return datetime.combine(today + timedelta(days=1), time.min, tzinfo=UTC)


def _utc_now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# QuotaTracker
# =============================================================================


class QuotaTracker:
    """Enforces and records per-caller daily usage."""

    def __init__(
        self,
        policy: PlanPolicy,
        store: UsageStore,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the tracker.

        Args:
            policy: Plan tier ceilings.
            store: Usage counter backend.
            clock: Source of the current time (UTC).
        """
        self._policy = policy
        self._store = store
        self._clock = clock

    @property
    def policy(self) -> PlanPolicy:
        return self._policy

    def today(self) -> date:
        return self._clock().astimezone(UTC).date()

    def admit(self, caller_id: str, plan_tier: str | None) -> Admitted | Rejected:
        """Atomically check the ceiling and take one slot.

        Args:
            caller_id: Caller identity.
            plan_tier: Caller's plan; unknown tiers use the free ceiling.

        Returns:
            Admitted with the remaining quota, or Rejected with the limit.
        """
        now = self._clock()
        limit = self._policy.limit_for(plan_tier)
        ok, count = self._store.increment_if_below(caller_id, now.astimezone(UTC).date(), limit)
        if ok:
            return Admitted(remaining=max(limit - count, 0), limit=limit, used=count)
        logger.info("Quota rejected: caller=%s, limit=%d, used=%d", caller_id, limit, count)
        return Rejected(limit=limit, used=count, reset_at=next_utc_midnight(now))

    def require(self, caller_id: str, plan_tier: str | None) -> Admitted:
        """Like admit(), but raise QuotaExceededError on rejection."""
        decision = self.admit(caller_id, plan_tier)
        if isinstance(decision, Rejected):
            raise QuotaExceededError(
                caller_id=caller_id,
                plan_tier=self._policy.resolve_tier(plan_tier),
                limit=decision.limit,
                reset_at=decision.reset_at,
            )
        return decision

    def usage(self, caller_id: str, plan_tier: str | None = None) -> UsageSnapshot:
        """Read today's counter without changing it."""
        day = self.today()
        return UsageSnapshot(
            day=day,
            used=self._store.get_count(caller_id, day),
            limit=self._policy.limit_for(plan_tier),
            plan_tier=self._policy.resolve_tier(plan_tier),
        )
