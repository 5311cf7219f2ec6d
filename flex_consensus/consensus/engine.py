"""Consensus Engine.

Reduces the gathered provider results into one Consensus verdict.

Rules:
- Only results with confidence > 0 take part (failure sentinels are skipped)
- Aggregate confidence is the exact arithmetic mean of the usable confidences
- The summary names the number of contributing providers and quotes the
  leading result (highest confidence, earliest on ties)
- Convergence/divergence points come from a pluggable PointsStrategy

Default strategy: sentence-level claim overlap. Claims made by two or more
providers become convergence points, claims only one provider made become
divergence points. When overlap finds nothing, feature comparisons (agreement
count, confidence spread, answer length spread) fill the lists.

Anti-Patterns Avoided:
- Constants at module level
- Cognitive complexity via helper functions
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Protocol, runtime_checkable

from flex_consensus.consensus.models import Consensus, ProviderResult


# =============================================================================
# Module Constants
# =============================================================================

_CONST_NO_RESPONSE_SUMMARY = (
    "Unable to generate consensus: no usable provider response was received"
)
_CONST_SUMMARY_TEMPLATE = (
    "Based on analysis from {count} {noun}, the consensus indicates: {excerpt}"
)
_CONST_EXCERPT_CHARS = 200
_CONST_MAX_POINTS = 5
_CONST_CLAIM_SIMILARITY = 0.75
_CONST_MAX_CLAIMS_PER_RESULT = 40
_CONST_MIN_CLAIM_CHARS = 12
_CONST_ALIGNED_SPREAD = 0.1
_CONST_SENTENCE_SPLITTER = r"(?<=[.!?])\s+"

logger = logging.getLogger(__name__)


# =============================================================================
# PointsStrategy
# =============================================================================


@runtime_checkable
class PointsStrategy(Protocol):
    """Derives convergence and divergence statements from usable results."""

    def compare(
        self,
        valid: Sequence[ProviderResult],
        results: Sequence[ProviderResult],
    ) -> tuple[list[str], list[str]]:
        """Return (convergence_points, divergence_points).

        Args:
            valid: Results with confidence > 0, in orchestration order.
            results: Every result including failure sentinels.
        """
        ...


# =============================================================================
# Claim helpers
# =============================================================================


def extract_claims(content: str) -> list[str]:
    """Split an answer into sentence-level claims.

    Very short fragments (list markers, headings) are dropped.
    """
    if not content or not content.strip():
        return []
    sentences = re.split(_CONST_SENTENCE_SPLITTER, content.strip())
    claims = [s.strip() for s in sentences if len(s.strip()) >= _CONST_MIN_CLAIM_CHARS]
    return claims[:_CONST_MAX_CLAIMS_PER_RESULT]


def _normalize_claim(claim: str) -> str:
    normalized = claim.lower().strip().rstrip(".!?")
    return re.sub(r"\s+", " ", normalized)


@dataclass(slots=True)
class _ClaimGroup:
    text: str
    normalized: str
    providers: list[str] = field(default_factory=list)


def _group_claims(valid: Sequence[ProviderResult], threshold: float) -> list[_ClaimGroup]:
    """Group similar claims across providers, keeping first-seen order."""
    groups: list[_ClaimGroup] = []
    for result in valid:
        for claim in extract_claims(result.response):
            normalized = _normalize_claim(claim)
            match = next(
                (
                    g for g in groups
                    if SequenceMatcher(None, g.normalized, normalized).ratio() >= threshold
                ),
                None,
            )
            if match is None:
                groups.append(_ClaimGroup(text=claim, normalized=normalized, providers=[result.provider]))
            elif result.provider not in match.providers:
                match.providers.append(result.provider)
    return groups


# =============================================================================
# Feature comparisons
# =============================================================================


def _confidence_spread(valid: Sequence[ProviderResult]) -> float:
    confidences = [r.confidence for r in valid]
    return max(confidences) - min(confidences)


def feature_convergence(
    valid: Sequence[ProviderResult],
    results: Sequence[ProviderResult],
) -> list[str]:
    """Convergence statements from answer features rather than content."""
    points = [f"{len(valid)} of {len(results)} providers returned a usable answer"]
    if len(valid) > 1 and _confidence_spread(valid) <= _CONST_ALIGNED_SPREAD:
        points.append(
            f"Provider confidence is closely aligned (spread {_confidence_spread(valid):.2f})"
        )
    return points


def feature_divergence(
    valid: Sequence[ProviderResult],
    results: Sequence[ProviderResult],
) -> list[str]:
    """Divergence statements from answer features rather than content."""
    points: list[str] = []
    if len(valid) < 2:
        points.append("Only one provider answered, so no cross-provider comparison is possible")
    else:
        spread = _confidence_spread(valid)
        if spread > _CONST_ALIGNED_SPREAD:
            points.append(f"Provider confidence differs by {spread:.2f}")
        lengths = [len(r.response) for r in valid]
        points.append(
            f"Answer length ranges from {min(lengths)} to {max(lengths)} characters"
        )
    points.extend(
        f"{r.provider} did not return a usable answer" for r in results if r.is_failure
    )
    return points


# =============================================================================
# ClaimOverlapStrategy
# =============================================================================


@dataclass(frozen=True, slots=True)
class ClaimOverlapStrategy:
    """Default PointsStrategy based on difflib claim similarity.

    Attributes:
        similarity_threshold: SequenceMatcher ratio at which two claims merge
        max_points: Cap applied to each list
    """

    similarity_threshold: float = _CONST_CLAIM_SIMILARITY
    max_points: int = _CONST_MAX_POINTS

    def compare(
        self,
        valid: Sequence[ProviderResult],
        results: Sequence[ProviderResult],
    ) -> tuple[list[str], list[str]]:
        convergence: list[str] = []
        divergence: list[str] = []

        if len(valid) > 1:
            groups = _group_claims(valid, self.similarity_threshold)
            shared = sorted(
                (g for g in groups if len(g.providers) > 1),
                key=lambda g: len(g.providers),
                reverse=True,
            )
            convergence = [
                f"{g.text} (supported by {', '.join(g.providers)})" for g in shared
            ]
            divergence = [
                f"Only {g.providers[0]} stated: {g.text}"
                for g in groups
                if len(g.providers) == 1
            ]

        if not convergence:
            convergence = feature_convergence(valid, results)
        if not divergence:
            divergence = feature_divergence(valid, results)

        return convergence[: self.max_points], divergence[: self.max_points]


# =============================================================================
# summarize
# =============================================================================


def _excerpt(text: str) -> str:
    text = text.strip()
    if len(text) <= _CONST_EXCERPT_CHARS:
        return text
    return f"{text[:_CONST_EXCERPT_CHARS]}..."


def leading_result(valid: Sequence[ProviderResult]) -> ProviderResult:
    """Highest-confidence result; the earliest one wins ties."""
    return max(valid, key=lambda r: r.confidence)


def summarize(
    results: Sequence[ProviderResult],
    strategy: PointsStrategy | None = None,
) -> Consensus:
    """Reduce provider results into a single Consensus.

    Args:
        results: Every result of the fan-out, failure sentinels included.
        strategy: Convergence/divergence strategy; ClaimOverlapStrategy by default.

    Returns:
        Consensus whose confidence is the exact mean of usable confidences,
        or a degenerate 0.0 consensus when nothing was usable.
    """
    valid = [r for r in results if r.confidence > 0]

    if not valid:
        logger.info("No usable provider response among %d results", len(results))
        return Consensus(
            summary=_CONST_NO_RESPONSE_SUMMARY,
            confidence=0.0,
            convergence_points=(),
            divergence_points=(),
            contributing_providers=0,
        )

    confidence = math.fsum(r.confidence for r in valid) / len(valid)
    # Float rounding can push an all-1.0 mean a hair above the bound
    confidence = min(confidence, 1.0)

    lead = leading_result(valid)
    summary = _CONST_SUMMARY_TEMPLATE.format(
        count=len(valid),
        noun="provider" if len(valid) == 1 else "providers",
        excerpt=_excerpt(lead.response),
    )

    convergence, divergence = (strategy or ClaimOverlapStrategy()).compare(valid, results)

    logger.info(
        "Consensus summarized: %d of %d providers usable, confidence=%.3f",
        len(valid),
        len(results),
        confidence,
    )

    return Consensus(
        summary=summary,
        confidence=confidence,
        convergence_points=tuple(convergence),
        divergence_points=tuple(divergence),
        contributing_providers=len(valid),
    )
