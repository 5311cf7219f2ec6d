"""Provider adapters - one uniform, failure-isolated call per reasoning service.

This module provides:
- ProviderAdapterProtocol: duck-typed adapter interface
- BaseProviderAdapter: shared timeout and failure-to-sentinel handling
- GPT5Adapter, ClaudeAdapter, GeminiAdapter, GrokAdapter: HTTP adapters
- build_default_adapters: adapter set built from Settings
"""

from flex_consensus.providers.anthropic import ClaudeAdapter
from flex_consensus.providers.base import BaseProviderAdapter, ProviderRequest
from flex_consensus.providers.gemini import GeminiAdapter
from flex_consensus.providers.openai_compat import (
    GPT5Adapter,
    GrokAdapter,
    OpenAICompatibleAdapter,
)
from flex_consensus.providers.protocols import ProviderAdapterProtocol
from flex_consensus.providers.registry import build_default_adapters


__all__ = [
    "BaseProviderAdapter",
    "ClaudeAdapter",
    "GPT5Adapter",
    "GeminiAdapter",
    "GrokAdapter",
    "OpenAICompatibleAdapter",
    "ProviderAdapterProtocol",
    "ProviderRequest",
    "build_default_adapters",
]
