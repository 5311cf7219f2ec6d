"""Tests for the HTTP provider adapters.

Uses httpx.MockTransport so the real request building, status handling and
payload parsing run without network access.

Covers:
- Wire format per provider (URL, headers, query params, body)
- Answer extraction and success reasoning tags
- Every failure class is absorbed into a sentinel result
- Cancellation is not absorbed
"""

import asyncio
import json
import random
from collections.abc import Callable

import httpx
import pytest

from flex_consensus.consensus.models import ProviderResult
from flex_consensus.providers.anthropic import ClaudeAdapter
from flex_consensus.providers.gemini import GeminiAdapter
from flex_consensus.providers.openai_compat import GPT5Adapter, GrokAdapter


# =============================================================================
# Test Constants
# =============================================================================

_TEST_QUESTION = "What are the main drivers of climate change?"
_TEST_ANSWER = "Greenhouse gas emissions from burning fossil fuels."
_TEST_OPENAI_URL = "https://openai.test/v1/chat/completions"
_TEST_ANTHROPIC_URL = "https://anthropic.test/v1/messages"
_TEST_GEMINI_URL = "https://gemini.test/v1beta/models/gemini-pro:generateContent"
_TEST_XAI_URL = "https://xai.test/v1/chat/completions"


def _openai_payload(text: str | None = _TEST_ANSWER) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def _client(handler: Callable) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _gpt5(client: httpx.AsyncClient, api_key: str = "sk-test", **kwargs) -> GPT5Adapter:
    kwargs.setdefault("timeout_seconds", 1.0)
    return GPT5Adapter(client, api_key, url=_TEST_OPENAI_URL, model="gpt-5", **kwargs)


class _Recorder:
    """Handler that records requests and returns a fixed response."""

    def __init__(self, status_code: int, **kwargs) -> None:
        self.status_code = status_code
        self.kwargs = kwargs
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, **self.kwargs)


# =============================================================================
# Wire format
# =============================================================================


class TestOpenAICompatibleAdapters:
    """Tests for GPT-5 and Grok adapters."""

    @pytest.mark.asyncio
    async def test_gpt5_request_and_answer(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        request = recorder.requests[0]
        body = json.loads(request.content)
        assert str(request.url) == _TEST_OPENAI_URL
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert body["model"] == "gpt-5"
        assert body["messages"] == [{"role": "user", "content": _TEST_QUESTION}]
        assert body["max_tokens"] == 1000
        assert body["temperature"] == 0.7

        assert result.provider == "gpt5"
        assert result.response == _TEST_ANSWER
        assert result.confidence == 0.85
        assert result.reasoning == (
            "Historical data analysis",
            "Pattern recognition",
            "Contextual understanding",
        )
        assert result.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_grok_uses_its_own_model_and_tags(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            adapter = GrokAdapter(
                client, "xai-key", url=_TEST_XAI_URL, model="grok-beta", timeout_seconds=1.0
            )
            result = await adapter.ask(_TEST_QUESTION)

        body = json.loads(recorder.requests[0].content)
        assert body["model"] == "grok-beta"
        assert recorder.requests[0].headers["Authorization"] == "Bearer xai-key"
        assert result.provider == "grok"
        assert "Real-time data" in result.reasoning


class TestClaudeAdapter:
    """Tests for the Anthropic adapter."""

    @pytest.mark.asyncio
    async def test_request_headers_and_answer(self) -> None:
        payload = {"content": [{"type": "text", "text": _TEST_ANSWER}]}
        recorder = _Recorder(200, json=payload)
        async with _client(recorder) as client:
            adapter = ClaudeAdapter(
                client,
                "anthropic-key",
                url=_TEST_ANTHROPIC_URL,
                model="claude-test",
                timeout_seconds=1.0,
            )
            result = await adapter.ask(_TEST_QUESTION)

        request = recorder.requests[0]
        assert request.headers["x-api-key"] == "anthropic-key"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "Authorization" not in request.headers
        assert json.loads(request.content)["max_tokens"] == 1024
        assert result.provider == "claude"
        assert result.response == _TEST_ANSWER
        assert result.reasoning[0] == "Multi-perspective analysis"


class TestGeminiAdapter:
    """Tests for the Gemini adapter."""

    @pytest.mark.asyncio
    async def test_key_in_query_and_answer(self) -> None:
        payload = {"candidates": [{"content": {"parts": [{"text": _TEST_ANSWER}]}}]}
        recorder = _Recorder(200, json=payload)
        async with _client(recorder) as client:
            adapter = GeminiAdapter(client, "gem-key", url=_TEST_GEMINI_URL, timeout_seconds=1.0)
            result = await adapter.ask(_TEST_QUESTION)

        request = recorder.requests[0]
        assert request.url.params["key"] == "gem-key"
        assert json.loads(request.content) == {
            "contents": [{"parts": [{"text": _TEST_QUESTION}]}]
        }
        assert result.provider == "gemini"
        assert result.response == _TEST_ANSWER
        assert result.reasoning[-1] == "Latest information"


# =============================================================================
# Failure isolation
# =============================================================================


def _assert_sentinel(result: ProviderResult, failure_class: str) -> None:
    assert result.provider == "gpt5"
    assert result.confidence == 0.0
    assert result.response == "Error: Unable to get response from gpt5"
    assert result.reasoning == (failure_class,)


class TestFailureClasses:
    """Every failure comes back as a sentinel, never as an exception."""

    @pytest.mark.asyncio
    async def test_missing_api_key_makes_no_call(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            adapter = _gpt5(client, api_key="")
            result = await adapter.ask(_TEST_QUESTION)

        assert adapter.is_configured is False
        assert recorder.requests == []
        _assert_sentinel(result, "provider_error")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 429, 500, 503])
    async def test_non_2xx_status(self, status_code: int) -> None:
        recorder = _Recorder(status_code, text="upstream says no")
        async with _client(recorder) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        _assert_sentinel(result, "http_status")

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(refuse) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        _assert_sentinel(result, "network_error")

    @pytest.mark.asyncio
    async def test_transport_timeout(self) -> None:
        def time_out(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        async with _client(time_out) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        _assert_sentinel(result, "timeout")

    @pytest.mark.asyncio
    async def test_call_exceeding_time_bound(self) -> None:
        async def slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(2.0)
            return httpx.Response(200, json=_openai_payload())

        async with _client(slow) as client:
            result = await _gpt5(client, timeout_seconds=0.05).ask(_TEST_QUESTION)

        _assert_sentinel(result, "timeout")
        assert result.latency_ms < 2000

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        recorder = _Recorder(200, text="<html>gateway</html>")
        async with _client(recorder) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        _assert_sentinel(result, "malformed_response")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"unexpected": True},
            {"choices": []},
            {"choices": [{"message": None}]},
            _openai_payload(text=""),
            _openai_payload(text=None),
            ["not", "an", "object"],
        ],
    )
    async def test_unexpected_payload_shape(self, payload) -> None:
        recorder = _Recorder(200, json=payload)
        async with _client(recorder) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        _assert_sentinel(result, "malformed_response")

    @pytest.mark.asyncio
    async def test_unexpected_exception(self) -> None:
        def explode(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("bug in transport")

        async with _client(explode) as client:
            result = await _gpt5(client).ask(_TEST_QUESTION)

        _assert_sentinel(result, "provider_error")

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        started = asyncio.Event()

        async def hang(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json=_openai_payload())

        async with _client(hang) as client:
            task = asyncio.create_task(_gpt5(client, timeout_seconds=30).ask(_TEST_QUESTION))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task


# =============================================================================
# Confidence
# =============================================================================


class TestConfidence:
    """Tests for reported confidence."""

    @pytest.mark.asyncio
    async def test_configured_base_confidence(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            result = await _gpt5(client, base_confidence=0.6).ask(_TEST_QUESTION)

        assert result.confidence == 0.6

    @pytest.mark.asyncio
    async def test_seeded_jitter_is_reproducible_and_bounded(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            first = _gpt5(client, confidence_jitter=0.1, rng=random.Random(7))
            second = _gpt5(client, confidence_jitter=0.1, rng=random.Random(7))
            a = [(await first.ask(_TEST_QUESTION)).confidence for _ in range(3)]
            b = [(await second.ask(_TEST_QUESTION)).confidence for _ in range(3)]

        assert a == b
        assert all(0.85 <= c <= 0.95 for c in a)

    @pytest.mark.asyncio
    async def test_jitter_never_exceeds_one(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            adapter = _gpt5(client, base_confidence=0.95, confidence_jitter=0.5, rng=random.Random(1))
            results = [await adapter.ask(_TEST_QUESTION) for _ in range(10)]

        assert all(r.confidence <= 1.0 for r in results)

    @pytest.mark.parametrize("base_confidence", [0.0, -0.2, 1.01])
    def test_base_confidence_out_of_range_rejected(self, base_confidence: float) -> None:
        client = _client(_Recorder(200, json=_openai_payload()))

        with pytest.raises(ValueError, match="base_confidence"):
            _gpt5(client, base_confidence=base_confidence)

    def test_negative_jitter_rejected(self) -> None:
        client = _client(_Recorder(200, json=_openai_payload()))

        with pytest.raises(ValueError, match="confidence_jitter"):
            _gpt5(client, confidence_jitter=-0.1)

    @pytest.mark.asyncio
    async def test_full_confidence_is_a_valid_answer(self) -> None:
        recorder = _Recorder(200, json=_openai_payload())
        async with _client(recorder) as client:
            result = await _gpt5(client, base_confidence=1.0).ask(_TEST_QUESTION)

        assert result.confidence == 1.0
        assert not result.is_failure
