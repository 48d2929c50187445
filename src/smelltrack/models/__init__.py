"""Data models for branch and smell lifecycle analysis."""

from smelltrack.models.commit import Branch, Commit, CommitDetails, FileRename
from smelltrack.models.config import RepositoryConfig, Settings
from smelltrack.models.smell import LifecycleEvent, SmellCategory, SmellInstance, SmellState

__all__ = [
    "Commit",
    "CommitDetails",
    "FileRename",
    "Branch",
    "SmellInstance",
    "SmellCategory",
    "SmellState",
    "LifecycleEvent",
    "RepositoryConfig",
    "Settings",
]
