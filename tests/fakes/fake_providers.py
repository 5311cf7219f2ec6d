"""Fake provider adapters for testing.

This fake allows:
- Tracking how often ask() was called and with what question
- Configurable delays for concurrency and deadline tests
- Configurable failures (sentinel result) and contract violations (raise)
- Configurable confidence and answer text

Satisfies ProviderAdapterProtocol via duck typing.
"""

from __future__ import annotations

import asyncio

from flex_consensus.consensus.models import ProviderResult


# =============================================================================
# Test Constants
# =============================================================================

_DEFAULT_CONTENT = "Fake provider answer about the submitted question."
_DEFAULT_CONFIDENCE = 0.8
_DEFAULT_FAILURE_CLASS = "provider_error"


class FakeProvider:
    """Test double for a provider adapter."""

    def __init__(
        self,
        provider_id: str,
        *,
        delay: float = 0.0,
        should_fail: bool = False,
        should_raise: bool = False,
        failure_class: str = _DEFAULT_FAILURE_CLASS,
        fixed_confidence: float = _DEFAULT_CONFIDENCE,
        fixed_content: str = _DEFAULT_CONTENT,
        is_configured: bool = True,
    ) -> None:
        """Initialize fake provider.

        Args:
            provider_id: Provider identifier.
            delay: Simulated latency in seconds.
            should_fail: If True, ask() returns the failure sentinel.
            should_raise: If True, ask() raises (violating the adapter contract).
            failure_class: Reasoning tag of the failure sentinel.
            fixed_confidence: Confidence of a successful answer.
            fixed_content: Text of a successful answer.
            is_configured: Reported configuration state for health checks.
        """
        self._provider_id = provider_id
        self._delay = delay
        self._should_fail = should_fail
        self._should_raise = should_raise
        self._failure_class = failure_class
        self._fixed_confidence = fixed_confidence
        self._fixed_content = fixed_content
        self.is_configured = is_configured

        # Tracking for test assertions
        self.call_count = 0
        self.last_question: str | None = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = False

    @property
    def provider_id(self) -> str:
        return self._provider_id

    async def ask(self, question: str) -> ProviderResult:
        self.call_count += 1
        self.last_question = question
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        finally:
            self.in_flight -= 1

        if self._should_raise:
            raise RuntimeError(f"{self._provider_id} exploded")
        if self._should_fail:
            return ProviderResult.failure(self._provider_id, self._failure_class)
        return ProviderResult(
            provider=self._provider_id,
            response=self._fixed_content,
            confidence=self._fixed_confidence,
            reasoning=("fake reasoning",),
            latency_ms=int(self._delay * 1000),
        )


def make_fake_providers(**overrides: dict) -> dict[str, FakeProvider]:
    """Build the four default providers as fakes.

    Keyword arguments map a provider id to FakeProvider options, e.g.
    `make_fake_providers(grok={"should_fail": True})`.
    """
    ids = ("gpt5", "claude", "gemini", "grok")
    return {pid: FakeProvider(pid, **overrides.get(pid, {})) for pid in ids}
