"""Tests for provider result and consensus data models."""

import dataclasses

import pytest

from flex_consensus.consensus.models import (
    FAILURE_CONFIDENCE,
    Consensus,
    ProviderResult,
)


class TestProviderResult:
    """Tests for ProviderResult."""

    def test_successful_result(self) -> None:
        result = ProviderResult(
            provider="gpt5",
            response="An answer.",
            confidence=0.85,
            reasoning=("Pattern recognition",),
            latency_ms=120,
        )

        assert result.is_failure is False
        assert result.latency_ms == 120

    @pytest.mark.parametrize("confidence", [-0.01, 1.01])
    def test_confidence_out_of_bounds_rejected(self, confidence: float) -> None:
        with pytest.raises(ValueError, match="confidence"):
            ProviderResult(provider="gpt5", response="x", confidence=confidence)

    def test_bounds_are_inclusive(self) -> None:
        assert ProviderResult(provider="a", response="x", confidence=0.0).is_failure
        assert not ProviderResult(provider="a", response="x", confidence=1.0).is_failure

    def test_failure_sentinel(self) -> None:
        result = ProviderResult.failure("claude", "timeout", latency_ms=30000)

        assert result.confidence == FAILURE_CONFIDENCE
        assert result.is_failure
        assert result.response == "Error: Unable to get response from claude"
        assert result.reasoning == ("timeout",)
        assert result.latency_ms == 30000

    def test_result_is_immutable(self) -> None:
        result = ProviderResult(provider="gpt5", response="x", confidence=0.5)

        with pytest.raises(dataclasses.FrozenInstanceError):
            result.confidence = 0.9  # type: ignore[misc]

    def test_serialized_form_restores_equal_result(self) -> None:
        result = ProviderResult("grok", "Answer", 0.85, ("Real-time data",), 42)

        data = result.to_dict()

        assert data["reasoning"] == ["Real-time data"]
        assert ProviderResult.from_dict(data) == result


class TestConsensus:
    """Tests for Consensus."""

    def test_degenerate_consensus(self) -> None:
        consensus = Consensus(summary="none", confidence=0.0)

        assert consensus.is_degenerate
        assert consensus.convergence_points == ()

    def test_confidence_validated(self) -> None:
        with pytest.raises(ValueError):
            Consensus(summary="bad", confidence=1.2)

    def test_to_dict_uses_lists(self) -> None:
        consensus = Consensus(
            summary="s",
            confidence=0.8,
            convergence_points=("a",),
            divergence_points=("b",),
            contributing_providers=2,
        )

        data = consensus.to_dict()

        assert data["convergence_points"] == ["a"]
        assert data["divergence_points"] == ["b"]
        assert Consensus.from_dict(data) == consensus
