"""Orchestrator - concurrent fan-out of one question to several providers.

Runs one asyncio task per requested provider and waits for all of them
(barrier) before returning. A failing or slow provider never blocks or fails
the others: adapters return failure sentinels, and the orchestrator wraps
each call once more so a misbehaving adapter cannot break the barrier.

The whole fan-out only fails when:
- the provider set is empty or names an unknown provider
- the round count is not a positive integer
- tasks cannot be scheduled
- the optional deadline passes before any provider answered

Example:
    >>> orchestrator = Orchestrator(adapters)
    >>> outcome = await orchestrator.run("Why is the sky blue?", ["gpt5", "claude"])
    >>> [r.provider for r in outcome.results]
    ['gpt5', 'claude']

Pattern: Parallel fan-out with asyncio (gather barrier)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from flex_consensus.consensus.models import ProviderResult
from flex_consensus.core.exceptions import (
    OrchestrationFatalError,
    OrchestrationTimeoutError,
)
from flex_consensus.providers.protocols import ProviderAdapterProtocol


logger = logging.getLogger(__name__)

_CONST_TIMEOUT_TAG = "timeout"
_CONST_ADAPTER_ERROR_TAG = "provider_error"
_CONST_EXECUTED_ROUNDS = 1


# =============================================================================
# OrchestrationResult
# =============================================================================


@dataclass(frozen=True, slots=True)
class OrchestrationResult:
    """Outcome of one fan-out.

    Attributes:
        results: One ProviderResult per requested provider, in request order
        latency_ms: Wall-clock time from dispatch to the last result
        timed_out: True when the orchestration deadline cut the fan-out short
        missing: Providers whose answer arrived too late and was discarded
        rounds_requested: Round count asked for by the caller
        rounds_executed: Rounds actually run
    """

    results: tuple[ProviderResult, ...]
    latency_ms: int
    timed_out: bool = False
    missing: tuple[str, ...] = field(default_factory=tuple)
    rounds_requested: int = 1
    rounds_executed: int = _CONST_EXECUTED_ROUNDS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "results": [r.to_dict() for r in self.results],
            "latency_ms": self.latency_ms,
            "timed_out": self.timed_out,
            "missing": list(self.missing),
            "rounds_requested": self.rounds_requested,
            "rounds_executed": self.rounds_executed,
        }


# =============================================================================
# Orchestrator
# =============================================================================


class Orchestrator:
    """Fans a question out to injected provider adapters.

    Attributes:
        adapters: Mapping of provider id to adapter
    """

    def __init__(self, adapters: Mapping[str, ProviderAdapterProtocol]) -> None:
        """Initialize the orchestrator.

        Args:
            adapters: Provider adapters keyed by provider id.
        """
        self._adapters = dict(adapters)

    @property
    def adapters(self) -> dict[str, ProviderAdapterProtocol]:
        return dict(self._adapters)

    @property
    def provider_ids(self) -> tuple[str, ...]:
        return tuple(self._adapters)

    def resolve(self, providers: Iterable[str]) -> list[str]:
        """Validate and de-duplicate a provider selection, keeping order.

        Raises:
            OrchestrationFatalError: Empty selection or unknown provider id.
        """
        selected = list(dict.fromkeys(providers))
        if not selected:
            raise OrchestrationFatalError("No providers specified")
        unknown = [p for p in selected if p not in self._adapters]
        if unknown:
            raise OrchestrationFatalError(
                f"Unknown provider(s): {', '.join(unknown)}"
            )
        return selected

    async def run(
        self,
        question: str,
        providers: Iterable[str],
        rounds: int = 1,
        deadline: float | None = None,
    ) -> OrchestrationResult:
        """Ask every selected provider once and wait for all answers.

        Args:
            question: Question text.
            providers: Provider ids to ask.
            rounds: Requested round count; only round 1 is executed.
            deadline: Optional bound in seconds on the whole fan-out.

        Returns:
            OrchestrationResult with one result per provider.

        Raises:
            OrchestrationFatalError: The fan-out could not run.
            OrchestrationTimeoutError: Deadline passed with no answer at all.
        """
        selected = self.resolve(providers)
        if rounds < 1:
            raise OrchestrationFatalError(f"rounds must be >= 1, got {rounds}")
        if rounds > _CONST_EXECUTED_ROUNDS:
            logger.info(
                "Multi-round debate requested (rounds=%d); executing round 1 only",
                rounds,
            )

        start = time.perf_counter()
        try:
            tasks = {
                provider: asyncio.create_task(
                    self._safe_ask(self._adapters[provider], question),
                    name=f"ask-{provider}",
                )
                for provider in selected
            }
        except RuntimeError as e:
            raise OrchestrationFatalError("Cannot schedule provider calls", cause=e) from e

        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=deadline)
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

        if pending:
            # Let cancelled calls unwind before their late results are dropped
            await asyncio.gather(*pending, return_exceptions=True)

        latency_ms = int((time.perf_counter() - start) * 1000)
        missing = tuple(p for p, task in tasks.items() if task not in done)

        if missing and not done:
            logger.warning(
                "Orchestration deadline of %.1fs passed with no provider answer",
                deadline,
            )
            raise OrchestrationTimeoutError(deadline or 0.0)

        results = tuple(
            tasks[p].result() if p not in missing
            else ProviderResult.failure(p, _CONST_TIMEOUT_TAG, latency_ms=latency_ms)
            for p in selected
        )

        if missing:
            logger.warning(
                "Orchestration deadline passed; discarded late providers=%s",
                ",".join(missing),
            )

        logger.info(
            "Fan-out finished: providers=%d, failed=%d, latency=%dms",
            len(results),
            sum(1 for r in results if r.is_failure),
            latency_ms,
        )

        return OrchestrationResult(
            results=results,
            latency_ms=latency_ms,
            timed_out=bool(missing),
            missing=missing,
            rounds_requested=rounds,
        )

    async def _safe_ask(
        self,
        adapter: ProviderAdapterProtocol,
        question: str,
    ) -> ProviderResult:
        """Call adapter.ask(), turning a contract violation into a sentinel."""
        try:
            return await adapter.ask(question)
        except Exception as e:
            logger.warning(
                "Adapter %s raised instead of returning a result: %s",
                adapter.provider_id,
                e,
            )
            return ProviderResult.failure(adapter.provider_id, _CONST_ADAPTER_ERROR_TAG)
