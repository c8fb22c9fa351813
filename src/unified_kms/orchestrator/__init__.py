"""Write and read orchestration over the backend registry and cache."""

from unified_kms.orchestrator.fanout import Outcome, SettledOutcomes, bounded, gather_settled
from unified_kms.orchestrator.reader import ReadOrchestrator, deduplicate, rank, relevance
from unified_kms.orchestrator.writer import WriteOrchestrator

__all__ = [
    "Outcome",
    "SettledOutcomes",
    "bounded",
    "gather_settled",
    "ReadOrchestrator",
    "WriteOrchestrator",
    "deduplicate",
    "rank",
    "relevance",
]
