"""OpenAI-compatible chat completions adapters (OpenAI and xAI Grok)."""

from __future__ import annotations

from typing import Any, ClassVar

import httpx
from pydantic import SecretStr

from flex_consensus.core.constants import ProviderName
from flex_consensus.providers.base import BaseProviderAdapter, ProviderRequest


class OpenAICompatibleAdapter(BaseProviderAdapter):
    """Adapter for any endpoint speaking the chat completions format.

    Request: `{"model", "messages": [{"role": "user", ...}], ...}`
    Response: `choices[0].message.content`
    """

    def __init__(
        self,
        provider_id: str,
        client: httpx.AsyncClient,
        api_key: SecretStr | str,
        url: str,
        model: str,
        timeout_seconds: float,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        **kwargs: Any,
    ) -> None:
        super().__init__(provider_id, client, api_key, timeout_seconds, **kwargs)
        self.url = url
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _build_request(self, question: str) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            json={
                "model": self.model,
                "messages": [{"role": "user", "content": question}],
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    def _extract_text(self, data: Any) -> str:
        return data["choices"][0]["message"]["content"]


class GPT5Adapter(OpenAICompatibleAdapter):
    """OpenAI GPT adapter."""

    SUCCESS_REASONING: ClassVar[tuple[str, ...]] = (
        "Historical data analysis",
        "Pattern recognition",
        "Contextual understanding",
    )

    def __init__(self, client: httpx.AsyncClient, api_key: SecretStr | str, **kwargs: Any) -> None:
        super().__init__(ProviderName.GPT5.value, client, api_key, **kwargs)


class GrokAdapter(OpenAICompatibleAdapter):
    """xAI Grok adapter."""

    SUCCESS_REASONING: ClassVar[tuple[str, ...]] = (
        "Real-time data",
        "Market insights",
        "Unconventional perspectives",
    )

    def __init__(self, client: httpx.AsyncClient, api_key: SecretStr | str, **kwargs: Any) -> None:
        super().__init__(ProviderName.GROK.value, client, api_key, **kwargs)
