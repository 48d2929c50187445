"""Smell lifecycle tracking along reconstructed branches."""

from smelltrack.tracking.aggregator import AggregationResult, LifecycleAggregator
from smelltrack.tracking.analyzer import BranchSmellAnalyzer
from smelltrack.tracking.duplication import SmellDuplicationChecker
from smelltrack.tracking.gap import FORK_POINT_ORDINAL, GapHandler

__all__ = [
    "BranchSmellAnalyzer",
    "GapHandler",
    "FORK_POINT_ORDINAL",
    "SmellDuplicationChecker",
    "LifecycleAggregator",
    "AggregationResult",
]
