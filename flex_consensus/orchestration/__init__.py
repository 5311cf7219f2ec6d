"""Orchestration module - concurrent fan-out and supervised background work."""

from flex_consensus.orchestration.orchestrator import OrchestrationResult, Orchestrator
from flex_consensus.orchestration.worker import QueryWorker


__all__ = ["OrchestrationResult", "Orchestrator", "QueryWorker"]
