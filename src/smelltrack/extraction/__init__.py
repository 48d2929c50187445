"""Commit graph providers."""

from smelltrack.extraction.base import CommitGraphProvider
from smelltrack.extraction.git_extractor import GitCommitGraph
from smelltrack.extraction.memory import InMemoryCommitGraph

__all__ = ["CommitGraphProvider", "GitCommitGraph", "InMemoryCommitGraph"]
