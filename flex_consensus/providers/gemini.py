"""Google Gemini generateContent adapter.

The API key travels in the `key` query parameter.
Response: `candidates[0].content.parts[0].text`
"""

from __future__ import annotations

from typing import Any, ClassVar

import httpx
from pydantic import SecretStr

from flex_consensus.core.constants import ProviderName
from flex_consensus.providers.base import BaseProviderAdapter, ProviderRequest


class GeminiAdapter(BaseProviderAdapter):
    """Google Gemini adapter."""

    SUCCESS_REASONING: ClassVar[tuple[str, ...]] = (
        "Large-scale data processing",
        "Cross-domain insights",
        "Latest information",
    )

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: SecretStr | str,
        url: str,
        timeout_seconds: float,
        **kwargs: Any,
    ) -> None:
        super().__init__(ProviderName.GEMINI.value, client, api_key, timeout_seconds, **kwargs)
        self.url = url

    def _build_request(self, question: str) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            json={"contents": [{"parts": [{"text": question}]}]},
            params={"key": self.api_key},
        )

    def _extract_text(self, data: Any) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
