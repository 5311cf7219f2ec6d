"""Query Worker - supervised background processing of admitted queries.

For each dispatched query the worker runs:

    orchestrate -> summarize -> finalize (store) -> publish (notifier)

Tasks are tracked so shutdown can drain them; concurrency is bounded by a
semaphore. A fatal orchestration error, an unexpected exception or a
shutdown cancellation all end with the query FAILED and a `query_failed`
event, so no query is left in PROCESSING by the worker.

Store calls run on the default executor; the event loop never waits on a
SQLite lock.
"""

from __future__ import annotations

import asyncio
import time

from flex_consensus.consensus.engine import PointsStrategy, summarize
from flex_consensus.core.constants import Timeouts
from flex_consensus.core.exceptions import (
    InvalidQueryTransitionError,
    OrchestrationFatalError,
    QueryNotFoundError,
)
from flex_consensus.core.logging import get_logger
from flex_consensus.notifications.events import QueryCompletedEvent, QueryFailedEvent
from flex_consensus.notifications.notifier import Notifier
from flex_consensus.orchestration.orchestrator import Orchestrator
from flex_consensus.queries.models import Query
from flex_consensus.queries.store import QueryStore


logger = get_logger(__name__)

_CONST_INTERNAL_ERROR = "Internal error while processing the query"
_CONST_SHUTDOWN_REASON = "Processing cancelled during service shutdown"


class QueryWorker:
    """Bounded pool of background query tasks.

    Attributes:
        max_concurrency: Queries processed at the same time
        deadline: Optional orchestration deadline in seconds
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        store: QueryStore,
        notifier: Notifier,
        max_concurrency: int = 16,
        deadline: float | None = None,
        strategy: PointsStrategy | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._notifier = notifier
        self.max_concurrency = max_concurrency
        self.deadline = deadline
        self._strategy = strategy
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: set[asyncio.Task[None]] = set()
        self._accepting = True

    @property
    def pending(self) -> int:
        """Queries dispatched but not yet finished."""
        return len(self._tasks)

    def dispatch(self, query: Query) -> asyncio.Task[None]:
        """Start background processing of a query and return its task.

        Raises:
            OrchestrationFatalError: The worker is shutting down or no event
                loop is running.
        """
        if not self._accepting:
            raise OrchestrationFatalError("Worker is shutting down")
        try:
            task = asyncio.create_task(self._run(query), name=f"query-{query.id}")
        except RuntimeError as e:
            raise OrchestrationFatalError("Cannot schedule query processing", cause=e) from e
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def join(self) -> None:
        """Wait until every dispatched query finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = Timeouts.WORKER_SHUTDOWN) -> None:
        """Stop accepting work, drain running queries, cancel stragglers."""
        self._accepting = False
        if not self._tasks:
            return
        logger.info("Draining query worker", pending=len(self._tasks), timeout=timeout)
        _, pending = await asyncio.wait(list(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("Cancelled unfinished queries on shutdown", cancelled=len(pending))

    async def _run(self, query: Query) -> None:
        try:
            async with self._semaphore:
                await self.process(query)
        except asyncio.CancelledError:
            await self.fail(query.id, _CONST_SHUTDOWN_REASON)
            raise

    async def process(self, query: Query) -> None:
        """Run the full orchestrate/summarize/finalize/publish sequence."""
        start = time.perf_counter()
        log = logger.bind(query_id=query.id, caller_id=query.caller_id)
        log.info("Processing query", providers=list(query.providers), rounds=query.rounds)

        try:
            outcome = await self._orchestrator.run(
                query.question,
                query.providers,
                query.rounds,
                deadline=self.deadline,
            )
            consensus = summarize(outcome.results, self._strategy)
        except OrchestrationFatalError as e:
            log.warning("Orchestration failed", error=str(e))
            await self.fail(query.id, str(e), _elapsed_ms(start))
            return
        except Exception:
            log.exception("Unexpected error while processing query")
            await self.fail(query.id, _CONST_INTERNAL_ERROR, _elapsed_ms(start))
            return

        processing_time_ms = _elapsed_ms(start)
        try:
            finalized = await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: self._store.finalize(
                    query.id,
                    outcome.results,
                    consensus,
                    processing_time_ms=processing_time_ms,
                ),
            )
        except (InvalidQueryTransitionError, QueryNotFoundError) as e:
            log.warning("Query could not be finalized", error=str(e))
            return

        delivered = self._notifier.publish(query.id, QueryCompletedEvent.from_query(finalized))
        log.info(
            "Query completed",
            confidence=round(consensus.confidence, 4),
            contributing=consensus.contributing_providers,
            timed_out=outcome.timed_out,
            processing_time_ms=finalized.processing_time_ms,
            subscribers=delivered,
        )

    async def fail(
        self,
        query_id: str,
        reason: str,
        processing_time_ms: int | None = None,
    ) -> Query | None:
        """Mark a query FAILED and publish `query_failed`.

        Returns:
            The failed query, or None if it was unknown or already terminal.
        """
        try:
            failed = await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: self._store.fail(query_id, reason, processing_time_ms=processing_time_ms),
            )
        except (InvalidQueryTransitionError, QueryNotFoundError) as e:
            logger.warning("Query could not be marked failed", query_id=query_id, error=str(e))
            return None
        self._notifier.publish(query_id, QueryFailedEvent(query_id=query_id, error=reason))
        return failed


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
