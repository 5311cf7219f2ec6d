"""Base class for HTTP provider adapters.

Each adapter is independent: if one provider fails, its call comes back as a
failure sentinel and the other providers continue. There is no fallback
between providers and no retry.

Failure classes (the single reasoning tag of a sentinel result):
- timeout: the call exceeded its time bound
- http_status: the provider answered with a non-2xx status
- network_error: the provider could not be reached
- malformed_response: the payload did not have the expected shape
- provider_error: anything else, including a missing API key
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

import httpx
from pydantic import SecretStr

from flex_consensus.consensus.models import ProviderResult
from flex_consensus.core.exceptions import (
    ProviderError,
    ProviderHTTPError,
    ProviderNetworkError,
    ProviderResponseError,
    ProviderTimeoutError,
)


logger = logging.getLogger(__name__)

_ERROR_DETAIL_CHARS = 200


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    """One outgoing provider HTTP request."""

    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


class BaseProviderAdapter(ABC):
    """Shared call, timeout and failure-isolation logic for adapters.

    Subclasses describe the wire format only: `_build_request()` and
    `_extract_text()`.

    Attributes:
        SUCCESS_REASONING: Reasoning tags attached to a successful answer.
    """

    SUCCESS_REASONING: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        provider_id: str,
        client: httpx.AsyncClient,
        api_key: SecretStr | str,
        timeout_seconds: float,
        base_confidence: float = 0.85,
        confidence_jitter: float = 0.0,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            provider_id: Identifier callers use to select this provider.
            client: Shared HTTP client (lifecycle owned by the caller).
            api_key: Provider API key; an empty key fails every call.
            timeout_seconds: Upper bound on one call.
            base_confidence: Confidence reported for a successful answer.
            confidence_jitter: Simulation mode; adds uniform noise in [0, jitter].
            rng: Random source for the simulation mode.

        Raises:
            ValueError: base_confidence outside (0, 1] or a negative jitter.
        """
        if not 0.0 < base_confidence <= 1.0:
            raise ValueError(f"base_confidence must be in (0, 1], got {base_confidence}")
        if confidence_jitter < 0.0:
            raise ValueError(f"confidence_jitter must be >= 0, got {confidence_jitter}")
        self._provider_id = provider_id
        self._client = client
        self._api_key = api_key if isinstance(api_key, SecretStr) else SecretStr(api_key)
        self._timeout = timeout_seconds
        self._base_confidence = base_confidence
        self._jitter = confidence_jitter
        self._rng = rng or random.Random()

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def is_configured(self) -> bool:
        """True when an API key is present."""
        return bool(self._api_key.get_secret_value())

    @property
    def base_confidence(self) -> float:
        return self._base_confidence

    @property
    def api_key(self) -> str:
        return self._api_key.get_secret_value()

    # -------------------------------------------------------------------------
    # Wire format
    # -------------------------------------------------------------------------

    @abstractmethod
    def _build_request(self, question: str) -> ProviderRequest:
        """Build the provider request for a question."""

    @abstractmethod
    def _extract_text(self, data: Any) -> str:
        """Pull the answer text out of a decoded provider payload.

        May raise KeyError, IndexError or TypeError on an unexpected shape.
        """

    # -------------------------------------------------------------------------
    # Call
    # -------------------------------------------------------------------------

    async def ask(self, question: str) -> ProviderResult:
        """Ask the provider one question; never raises.

        Cancellation is not a failure and propagates to the caller.
        """
        start = time.perf_counter()
        try:
            if not self.is_configured:
                raise ProviderError("No API key configured", self._provider_id)
            text = await asyncio.wait_for(self._call(question), timeout=self._timeout)
        except TimeoutError:
            return self._failure(ProviderTimeoutError(self._provider_id, self._timeout), start)
        except ProviderError as e:
            return self._failure(e, start)
        except Exception as e:
            logger.exception("Unexpected error calling provider=%s", self._provider_id)
            return self._failure(ProviderError(str(e), self._provider_id), start)

        latency_ms = _elapsed_ms(start)
        logger.info(
            "Provider answered: provider=%s, chars=%d, latency=%dms",
            self._provider_id, len(text), latency_ms,
        )
        return ProviderResult(
            provider=self._provider_id,
            response=text,
            confidence=self._confidence(),
            reasoning=self.SUCCESS_REASONING,
            latency_ms=latency_ms,
        )

    async def _call(self, question: str) -> str:
        request = self._build_request(question)
        try:
            response = await self._client.post(
                request.url,
                json=request.json,
                headers=request.headers,
                params=request.params or None,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(self._provider_id, self._timeout) from e
        except httpx.HTTPError as e:
            raise ProviderNetworkError(str(e) or type(e).__name__, self._provider_id) from e

        if not response.is_success:
            raise ProviderHTTPError(
                self._provider_id,
                response.status_code,
                response.text[:_ERROR_DETAIL_CHARS],
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError("Response body is not JSON", self._provider_id) from e

        try:
            text = self._extract_text(data)
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(
                f"Unexpected payload shape: {e!r}", self._provider_id
            ) from e

        if not isinstance(text, str) or not text.strip():
            raise ProviderResponseError("Empty answer text", self._provider_id)
        return text

    def _confidence(self) -> float:
        if not self._jitter:
            return self._base_confidence
        return min(1.0, self._base_confidence + self._rng.uniform(0.0, self._jitter))

    def _failure(self, error: ProviderError, start: float) -> ProviderResult:
        logger.warning(
            "Provider call failed: provider=%s, class=%s, error=%s",
            self._provider_id, error.failure_class, error,
        )
        return ProviderResult.failure(
            self._provider_id,
            error.failure_class,
            latency_ms=_elapsed_ms(start),
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
