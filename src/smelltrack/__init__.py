"""smelltrack - branch-aware code smell lifecycle tracking over Git histories."""

__version__ = "0.1.0"

from smelltrack.analysis import AnalysisSummary, ProjectAnalysis, analyze_projects
from smelltrack.exceptions import (
    CommitNotFoundError,
    GraphIntegrityError,
    NotCoveredError,
    SmellFeedError,
    SmellTrackError,
)
from smelltrack.topology import BranchReconstructor
from smelltrack.tracking import (
    BranchSmellAnalyzer,
    GapHandler,
    LifecycleAggregator,
    SmellDuplicationChecker,
)

__all__ = [
    "__version__",
    "ProjectAnalysis",
    "AnalysisSummary",
    "analyze_projects",
    "BranchReconstructor",
    "GapHandler",
    "SmellDuplicationChecker",
    "BranchSmellAnalyzer",
    "LifecycleAggregator",
    "SmellTrackError",
    "GraphIntegrityError",
    "NotCoveredError",
    "SmellFeedError",
    "CommitNotFoundError",
]
