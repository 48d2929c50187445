"""Data models for commits and reconstructed branches."""

from datetime import datetime
from functools import cached_property
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class FileRename(BaseModel):
    """A file renamed by a commit, as detected by git."""

    model_config = ConfigDict(frozen=True)

    old_path: str = Field(..., description="Path before the commit")
    new_path: str = Field(..., description="Path after the commit")
    similarity: int = Field(100, description="Rename similarity score (0-100)")


class CommitDetails(BaseModel):
    """Diff statistics of a commit against its first parent."""

    additions: int = Field(0, description="Number of lines added")
    deletions: int = Field(0, description="Number of lines deleted")
    files_changed: int = Field(0, description="Number of files changed")
    renames: List[FileRename] = Field(default_factory=list, description="Source files renamed")


class Commit(BaseModel):
    """A single commit of the analyzed history. Immutable once read."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "sha": "abc123def456",
                "parents": ["parent123", "merged456"],
                "ordinal": 42,
                "author_email": "john@example.com",
                "timestamp": "2024-01-15T10:30:00Z",
                "message": "Merge branch 'feature'",
                "in_feed": True,
            }
        },
    )

    sha: str = Field(..., description="Full commit SHA hash")
    parents: Tuple[str, ...] = Field(default=(), description="Parent hashes, mainline parent first")
    ordinal: int = Field(..., description="Chronological position in the project history")
    author_email: Optional[str] = Field(None, description="Author email")
    timestamp: Optional[datetime] = Field(None, description="Commit timestamp")
    message: str = Field("", description="Full commit message")
    in_feed: bool = Field(False, description="Whether the smell feed analyzed this commit")

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    @property
    def is_root(self) -> bool:
        return not self.parents


class Branch(BaseModel):
    """A reconstructed branch: a chain of commits between a fork and a merge.

    Branch 0 is the trunk, which contains HEAD and is never merged. The
    position of a commit in ``commits`` is its in-branch ordinal.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Branch identifier, 0 for the trunk")
    commits: Tuple[Commit, ...] = Field(default=(), description="Commits, oldest first")
    fork_point: Optional[Commit] = Field(None, description="Commit this branch diverged from")
    merge_point: Optional[Commit] = Field(None, description="Commit this branch was merged into")

    @property
    def is_trunk(self) -> bool:
        return self.id == 0

    @property
    def first_commit(self) -> Optional[Commit]:
        return self.commits[0] if self.commits else None

    @property
    def last_commit(self) -> Optional[Commit]:
        return self.commits[-1] if self.commits else None

    @cached_property
    def ordinals(self) -> Dict[str, int]:
        return {commit.sha: index for index, commit in enumerate(self.commits)}

    def ordinal_of(self, sha: str) -> Optional[int]:
        """Return the in-branch ordinal of a commit, or None if not on this branch."""
        return self.ordinals.get(sha)

    def __contains__(self, sha: object) -> bool:
        return sha in self.ordinals
