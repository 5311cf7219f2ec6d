"""Construction of the default provider adapter set.

The Orchestrator receives this mapping explicitly; there is no process-wide
provider registry.
"""

from __future__ import annotations

import random

import httpx

from flex_consensus.core.config import Settings
from flex_consensus.core.constants import ProviderName
from flex_consensus.providers.anthropic import ClaudeAdapter
from flex_consensus.providers.base import BaseProviderAdapter
from flex_consensus.providers.gemini import GeminiAdapter
from flex_consensus.providers.openai_compat import GPT5Adapter, GrokAdapter


def build_default_adapters(
    settings: Settings,
    client: httpx.AsyncClient,
    rng: random.Random | None = None,
) -> dict[str, BaseProviderAdapter]:
    """Build one adapter per known provider, keyed by provider id.

    Args:
        settings: Application settings (endpoints, keys, timeouts).
        client: Shared HTTP client.
        rng: Random source for the confidence simulation mode. Seeded from
            `settings.confidence_seed` when not given.

    Returns:
        Mapping of provider id to adapter, in the default provider order.
    """
    if rng is None:
        rng = random.Random(settings.confidence_seed)

    common = {
        "timeout_seconds": settings.provider_timeout_seconds,
        "confidence_jitter": settings.confidence_jitter,
        "rng": rng,
    }

    adapters: list[BaseProviderAdapter] = [
        GPT5Adapter(
            client,
            settings.openai_api_key,
            url=settings.openai_base_url,
            model=settings.openai_model,
            max_tokens=settings.provider_max_tokens,
            temperature=settings.provider_temperature,
            base_confidence=settings.confidence_for(ProviderName.GPT5.value),
            **common,
        ),
        ClaudeAdapter(
            client,
            settings.anthropic_api_key,
            url=settings.anthropic_base_url,
            model=settings.anthropic_model,
            version=settings.anthropic_version,
            base_confidence=settings.confidence_for(ProviderName.CLAUDE.value),
            **common,
        ),
        GeminiAdapter(
            client,
            settings.gemini_api_key,
            url=settings.gemini_base_url,
            base_confidence=settings.confidence_for(ProviderName.GEMINI.value),
            **common,
        ),
        GrokAdapter(
            client,
            settings.xai_api_key,
            url=settings.xai_base_url,
            model=settings.xai_model,
            max_tokens=settings.provider_max_tokens,
            temperature=settings.provider_temperature,
            base_confidence=settings.confidence_for(ProviderName.GROK.value),
            **common,
        ),
    ]
    return {adapter.provider_id: adapter for adapter in adapters}
