"""Anthropic messages API adapter.

Request headers: `x-api-key`, `anthropic-version`
Response: `content[0].text`
"""

from __future__ import annotations

from typing import Any, ClassVar

import httpx
from pydantic import SecretStr

from flex_consensus.core.constants import ProviderName
from flex_consensus.providers.base import BaseProviderAdapter, ProviderRequest


_DEFAULT_VERSION = "2023-06-01"
_DEFAULT_MAX_TOKENS = 1024


class ClaudeAdapter(BaseProviderAdapter):
    """Anthropic Claude adapter."""

    SUCCESS_REASONING: ClassVar[tuple[str, ...]] = (
        "Multi-perspective analysis",
        "Ethical considerations",
        "Nuanced interpretation",
    )

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: SecretStr | str,
        url: str,
        model: str,
        timeout_seconds: float,
        version: str = _DEFAULT_VERSION,
        max_tokens: int = _DEFAULT_MAX_TOKENS,
        **kwargs: Any,
    ) -> None:
        super().__init__(ProviderName.CLAUDE.value, client, api_key, timeout_seconds, **kwargs)
        self.url = url
        self.model = model
        self.version = version
        self.max_tokens = max_tokens

    def _build_request(self, question: str) -> ProviderRequest:
        return ProviderRequest(
            url=self.url,
            json={
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [{"role": "user", "content": question}],
            },
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": self.version,
            },
        )

    def _extract_text(self, data: Any) -> str:
        return data["content"][0]["text"]
