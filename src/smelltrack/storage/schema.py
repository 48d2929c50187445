"""Record schemas written to a persistence sink."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from smelltrack.models import Branch, Commit, CommitDetails, FileRename, LifecycleEvent


class CommitRecord(BaseModel):
    """A commit of the project history with its diff statistics."""

    project_id: int = Field(..., description="Project identifier")
    sha: str = Field(..., description="Full commit SHA hash")
    ordinal: int = Field(..., description="Global chronological ordinal")
    author_email: Optional[str] = Field(None, description="Author email")
    date: Optional[datetime] = Field(None, description="Commit timestamp")
    message: str = Field("", description="Full commit message")
    additions: int = Field(0, description="Number of lines added")
    deletions: int = Field(0, description="Number of lines deleted")
    files_changed: int = Field(0, description="Number of files changed")
    merged_sha: Optional[str] = Field(None, description="Second parent of a merge commit")
    in_feed: bool = Field(False, description="Whether the smell feed analyzed this commit")

    @classmethod
    def from_commit(
        cls, project_id: int, commit: Commit, details: CommitDetails
    ) -> "CommitRecord":
        return cls(
            project_id=project_id,
            sha=commit.sha,
            ordinal=commit.ordinal,
            author_email=commit.author_email,
            date=commit.timestamp,
            message=commit.message,
            additions=details.additions,
            deletions=details.deletions,
            files_changed=details.files_changed,
            merged_sha=commit.parents[1] if commit.is_merge else None,
            in_feed=commit.in_feed,
        )


class FileRenameRecord(BaseModel):
    """A source file renamed by a commit."""

    project_id: int = Field(..., description="Project identifier")
    sha: str = Field(..., description="Commit performing the rename")
    old_file: str = Field(..., description="Path before the commit")
    new_file: str = Field(..., description="Path after the commit")
    similarity: int = Field(..., description="Rename similarity score")

    @classmethod
    def from_rename(cls, project_id: int, sha: str, rename: FileRename) -> "FileRenameRecord":
        return cls(
            project_id=project_id,
            sha=sha,
            old_file=rename.old_path,
            new_file=rename.new_path,
            similarity=rename.similarity,
        )


class BranchRecord(BaseModel):
    """A reconstructed branch."""

    project_id: int = Field(..., description="Project identifier")
    branch_id: int = Field(..., description="Branch identifier, 0 for the trunk")
    fork_sha: Optional[str] = Field(None, description="Commit the branch diverged from")
    merge_sha: Optional[str] = Field(None, description="Commit the branch was merged into")
    is_trunk: bool = Field(False, description="Whether this is the trunk")

    @classmethod
    def from_branch(cls, project_id: int, branch: Branch) -> "BranchRecord":
        return cls(
            project_id=project_id,
            branch_id=branch.id,
            fork_sha=branch.fork_point.sha if branch.fork_point else None,
            merge_sha=branch.merge_point.sha if branch.merge_point else None,
            is_trunk=branch.is_trunk,
        )


class BranchCommitRecord(BaseModel):
    """Membership of a commit in a branch."""

    project_id: int = Field(..., description="Project identifier")
    branch_id: int = Field(..., description="Branch identifier")
    sha: str = Field(..., description="Commit hash")
    ordinal: int = Field(..., description="In-branch ordinal, from 0")


class LifecycleRecord(BaseModel):
    """A smell lifecycle event, flattened for storage."""

    project_id: int = Field(..., description="Project identifier")
    branch_id: int = Field(..., description="Branch identifier")
    smell_type: str = Field(..., description="Smell type tag")
    instance: str = Field(..., description="Smell instance key")
    file: Optional[str] = Field(None, description="Source file hosting the instance")
    category: str = Field(..., description="introduction, presence, refactor or lost")
    sha: Optional[str] = Field(None, description="Commit of the event")
    since: Optional[int] = Field(None, description="Lower ordinal of a lost interval")
    until: Optional[int] = Field(None, description="Upper ordinal of a lost interval")

    @classmethod
    def from_event(cls, event: LifecycleEvent) -> "LifecycleRecord":
        return cls(
            project_id=event.project_id,
            branch_id=event.branch_id,
            smell_type=event.smell.type,
            instance=event.smell.instance,
            file=event.smell.file,
            category=event.category.value,
            sha=event.sha,
            since=event.since,
            until=event.until,
        )
