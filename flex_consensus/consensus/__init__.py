"""Consensus module - provider result models and the Consensus Engine."""

from flex_consensus.consensus.engine import (
    ClaimOverlapStrategy,
    PointsStrategy,
    extract_claims,
    summarize,
)
from flex_consensus.consensus.models import Consensus, ProviderResult


__all__ = [
    "ClaimOverlapStrategy",
    "Consensus",
    "PointsStrategy",
    "ProviderResult",
    "extract_claims",
    "summarize",
]
