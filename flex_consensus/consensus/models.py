"""Data models for provider answers and the aggregated consensus.

Anti-Patterns Avoided:
- Constants at module level
- Frozen dataclasses for immutability
- Proper type annotations throughout
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Constants
# =============================================================================

FAILURE_CONFIDENCE = 0.0
FAILURE_RESPONSE_TEMPLATE = "Error: Unable to get response from {provider}"


def _check_confidence(value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"confidence must be within [0.0, 1.0], got {value}")


# =============================================================================
# ProviderResult
# =============================================================================


@dataclass(frozen=True, slots=True)
class ProviderResult:
    """Answer (or failure sentinel) from a single provider call.

    A confidence of exactly 0.0 is reserved for failed calls. Such results
    carry an error-indicating response and the failure class as their only
    reasoning tag; they are kept for audit but never averaged.

    Attributes:
        provider: Provider identifier (e.g. "gpt5")
        response: Answer text, or the error text for a failed call
        confidence: Confidence score (0.0-1.0)
        reasoning: Reasoning tags describing how the answer was produced
        latency_ms: Wall-clock duration of the call
    """

    provider: str
    response: str
    confidence: float
    reasoning: tuple[str, ...] = field(default_factory=tuple)
    latency_ms: int = 0

    def __post_init__(self) -> None:
        _check_confidence(self.confidence)

    @property
    def is_failure(self) -> bool:
        """True for the sentinel result of a failed call."""
        return self.confidence <= FAILURE_CONFIDENCE

    @classmethod
    def failure(cls, provider: str, failure_class: str, latency_ms: int = 0) -> ProviderResult:
        """Build the sentinel result for a failed provider call."""
        return cls(
            provider=provider,
            response=FAILURE_RESPONSE_TEMPLATE.format(provider=provider),
            confidence=FAILURE_CONFIDENCE,
            reasoning=(failure_class,),
            latency_ms=latency_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "provider": self.provider,
            "response": self.response,
            "confidence": self.confidence,
            "reasoning": list(self.reasoning),
            "latency_ms": self.latency_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderResult:
        """Rebuild a result from its serialized form."""
        return cls(
            provider=data["provider"],
            response=data["response"],
            confidence=float(data["confidence"]),
            reasoning=tuple(data.get("reasoning", ())),
            latency_ms=int(data.get("latency_ms", 0)),
        )


# =============================================================================
# Consensus
# =============================================================================


@dataclass(frozen=True, slots=True)
class Consensus:
    """Single verdict derived from a set of provider results.

    Attributes:
        summary: Human-readable consensus summary
        confidence: Mean confidence of the usable results (0.0 if none)
        convergence_points: Statements the providers agree on
        divergence_points: Statements where the providers differ
        contributing_providers: Number of usable results behind the verdict
    """

    summary: str
    confidence: float
    convergence_points: tuple[str, ...] = field(default_factory=tuple)
    divergence_points: tuple[str, ...] = field(default_factory=tuple)
    contributing_providers: int = 0

    def __post_init__(self) -> None:
        _check_confidence(self.confidence)

    @property
    def is_degenerate(self) -> bool:
        """True when no provider contributed a usable answer."""
        return self.contributing_providers == 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "summary": self.summary,
            "confidence": self.confidence,
            "convergence_points": list(self.convergence_points),
            "divergence_points": list(self.divergence_points),
            "contributing_providers": self.contributing_providers,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Consensus:
        """Rebuild a consensus from its serialized form."""
        return cls(
            summary=data["summary"],
            confidence=float(data["confidence"]),
            convergence_points=tuple(data.get("convergence_points", ())),
            divergence_points=tuple(data.get("divergence_points", ())),
            contributing_providers=int(data.get("contributing_providers", 0)),
        )
