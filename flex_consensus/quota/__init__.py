"""Quota module - plan ceilings and atomic per-caller daily admission."""

from flex_consensus.quota.policy import PlanPolicy
from flex_consensus.quota.stores import InMemoryUsageStore, SQLiteUsageStore, UsageStore
from flex_consensus.quota.tracker import Admitted, QuotaTracker, Rejected, UsageSnapshot


__all__ = [
    "Admitted",
    "InMemoryUsageStore",
    "PlanPolicy",
    "QuotaTracker",
    "Rejected",
    "SQLiteUsageStore",
    "UsageSnapshot",
    "UsageStore",
]
