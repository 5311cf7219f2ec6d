"""Notifications module - lifecycle events and the per-query pub/sub channel."""

from flex_consensus.notifications.events import (
    LifecycleEvent,
    QueryCompletedEvent,
    QueryFailedEvent,
    QueryStatusEvent,
)
from flex_consensus.notifications.notifier import Notifier, Subscription


__all__ = [
    "LifecycleEvent",
    "Notifier",
    "QueryCompletedEvent",
    "QueryFailedEvent",
    "QueryStatusEvent",
    "Subscription",
]
