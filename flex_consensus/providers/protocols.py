"""Protocol definitions for provider adapters.

Anti-Patterns Avoided:
- Clean protocol with runtime_checkable for isinstance checks
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from flex_consensus.consensus.models import ProviderResult


@runtime_checkable
class ProviderAdapterProtocol(Protocol):
    """Uniform call contract to one external reasoning provider.

    Implementations never raise: every failure comes back as a sentinel
    ProviderResult with confidence 0.0.

    Example:
        >>> class MyAdapter:
        ...     @property
        ...     def provider_id(self) -> str: ...
        ...     async def ask(self, question: str) -> ProviderResult: ...
        >>>
        >>> isinstance(MyAdapter(), ProviderAdapterProtocol)
        True
    """

    @property
    def provider_id(self) -> str:
        """Identifier callers use to select this provider."""
        ...

    async def ask(self, question: str) -> ProviderResult:
        """Ask the provider one question.

        Args:
            question: The submitted question text.

        Returns:
            ProviderResult, or its failure sentinel.
        """
        ...
