"""Queries module - query lifecycle models, stores and caller-facing views."""

from flex_consensus.queries.models import CallerStats, Query, QueryStatus, new_query_id
from flex_consensus.queries.sqlite_store import SQLiteQueryStore
from flex_consensus.queries.store import InMemoryQueryStore, QueryStore


__all__ = [
    "CallerStats",
    "InMemoryQueryStore",
    "Query",
    "QueryStatus",
    "QueryStore",
    "SQLiteQueryStore",
    "new_query_id",
]
