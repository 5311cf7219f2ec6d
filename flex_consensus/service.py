"""Query Service - submission and retrieval facade used by the HTTP layer.

Submission path (no network calls, store work on the default executor):

    validate -> quota admit -> store.create -> worker.dispatch -> receipt

Retrieval enforces ownership: a query owned by another caller is reported
as not found.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass

from flex_consensus.core.constants import (
    DEFAULT_ROUNDS,
    QUESTION_MAX_LENGTH,
    QUESTION_MIN_LENGTH,
)
from flex_consensus.core.exceptions import (
    OrchestrationFatalError,
    QueryNotFoundError,
    QueryValidationError,
)
from flex_consensus.core.logging import bind_request_context, get_logger
from flex_consensus.orchestration.orchestrator import Orchestrator
from flex_consensus.orchestration.worker import QueryWorker
from flex_consensus.queries.models import CallerStats, Query, QueryStatus
from flex_consensus.queries.store import QueryStore
from flex_consensus.quota.tracker import QuotaTracker, UsageSnapshot


logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SubmissionReceipt:
    """Synchronous answer to an admitted submission."""

    query: Query
    estimated_seconds: int
    remaining_quota: int
    daily_limit: int
    daily_used: int


@dataclass(frozen=True, slots=True)
class UserStats:
    """Per-caller usage and history figures."""

    usage: UsageSnapshot
    history: CallerStats


class QueryService:
    """Facade over quota, store and worker."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        store: QueryStore,
        quota: QuotaTracker,
        worker: QueryWorker,
        estimated_seconds: int = 15,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._quota = quota
        self._worker = worker
        self.estimated_seconds = estimated_seconds

    @property
    def store(self) -> QueryStore:
        return self._store

    @property
    def worker(self) -> QueryWorker:
        return self._worker

    @property
    def known_providers(self) -> tuple[str, ...]:
        return self._orchestrator.provider_ids

    async def submit(
        self,
        caller_id: str,
        plan_tier: str | None,
        question: str,
        providers: Iterable[str] | None = None,
        rounds: int = DEFAULT_ROUNDS,
    ) -> SubmissionReceipt:
        """Validate, admit and dispatch a question.

        Validation happens before admission, so a rejected submission never
        consumes quota. Admission and creation run on the default executor.

        Raises:
            QueryValidationError: Question length or rounds out of range.
            QuotaExceededError: Caller is over the daily ceiling.
        """
        question = self._validate_question(question)
        selected = self._normalize_providers(providers)
        if rounds < 1:
            raise QueryValidationError("rounds must be at least 1", field="rounds", value=rounds)

        bind_request_context(caller_id=caller_id)
        loop = asyncio.get_event_loop()
        admitted = await loop.run_in_executor(
            None,
            lambda: self._quota.require(caller_id, plan_tier),
        )
        query = await loop.run_in_executor(
            None,
            lambda: self._store.create(question, selected, rounds, caller_id=caller_id),
        )
        bind_request_context(query_id=query.id)

        try:
            self._worker.dispatch(query)
        except OrchestrationFatalError as e:
            logger.error("Query dispatch failed", error=str(e))
            query = await self._worker.fail(query.id, str(e)) or query

        logger.info(
            "Query admitted",
            providers=list(selected),
            remaining=admitted.remaining,
        )
        return SubmissionReceipt(
            query=query,
            estimated_seconds=self.estimated_seconds,
            remaining_quota=admitted.remaining,
            daily_limit=admitted.limit,
            daily_used=admitted.used,
        )

    async def get_result(self, caller_id: str, query_id: str) -> Query:
        """Return a query owned by the caller.

        Raises:
            QueryNotFoundError: Unknown id or owned by someone else.
        """
        query = await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: self._store.get(query_id),
        )
        if query.caller_id != caller_id:
            raise QueryNotFoundError(query_id)
        return query

    async def list_queries(
        self,
        caller_id: str,
        status: QueryStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Query], int]:
        return await asyncio.get_event_loop().run_in_executor(
            None,
            lambda: self._store.list_for_caller(caller_id, status=status, limit=limit, offset=offset),
        )

    async def user_stats(self, caller_id: str, plan_tier: str | None) -> UserStats:
        loop = asyncio.get_event_loop()
        usage = await loop.run_in_executor(None, lambda: self._quota.usage(caller_id, plan_tier))
        history = await loop.run_in_executor(None, lambda: self._store.stats_for_caller(caller_id))
        return UserStats(usage=usage, history=history)


    def _validate_question(self, question: str) -> str:
        question = (question or "").strip()
        if not QUESTION_MIN_LENGTH <= len(question) <= QUESTION_MAX_LENGTH:
            raise QueryValidationError(
                f"Question must be between {QUESTION_MIN_LENGTH} and "
                f"{QUESTION_MAX_LENGTH} characters",
                field="question",
                value=len(question),
            )
        return question

    def _normalize_providers(self, providers: Iterable[str] | None) -> tuple[str, ...]:
        # Empty or unknown selections are not rejected here: the orchestrator
        # treats them as fatal and the query ends FAILED.
        if providers is None:
            return self.known_providers
        return tuple(dict.fromkeys(p.strip().lower() for p in providers if p.strip()))
