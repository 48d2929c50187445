"""Persistence sink interface and in-memory implementation."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from smelltrack.storage.schema import (
    BranchCommitRecord,
    BranchRecord,
    CommitRecord,
    FileRenameRecord,
    LifecycleRecord,
)


class PersistenceSink(ABC):
    """Destination of the records produced by an analysis.

    Records are buffered by ``add_*`` calls and written by ``flush``.
    """

    @abstractmethod
    def ensure_project(self, name: str, url: Optional[str] = None) -> int:
        """Register a project if needed and return its identifier."""
        pass

    @abstractmethod
    def add_commits(self, records: Sequence[CommitRecord]) -> None:
        pass

    @abstractmethod
    def add_file_renames(self, records: Sequence[FileRenameRecord]) -> None:
        pass

    @abstractmethod
    def add_branch(self, record: BranchRecord) -> None:
        pass

    @abstractmethod
    def add_branch_commits(self, records: Sequence[BranchCommitRecord]) -> None:
        pass

    @abstractmethod
    def add_lifecycle_events(self, records: Sequence[LifecycleRecord]) -> None:
        pass

    @abstractmethod
    def flush(self) -> None:
        """Write every buffered record."""
        pass

    @abstractmethod
    def discard(self) -> None:
        """Drop buffered records without writing them."""
        pass

    def close(self) -> None:
        self.flush()


class MemorySink(PersistenceSink):
    """Keeps flushed records in lists."""

    def __init__(self) -> None:
        self.projects: Dict[str, int] = {}
        self.commits: List[CommitRecord] = []
        self.file_renames: List[FileRenameRecord] = []
        self.branches: List[BranchRecord] = []
        self.branch_commits: List[BranchCommitRecord] = []
        self.events: List[LifecycleRecord] = []
        self.flushes = 0
        self._pending: Dict[str, list] = {}

    def ensure_project(self, name: str, url: Optional[str] = None) -> int:
        if name not in self.projects:
            self.projects[name] = len(self.projects) + 1
        return self.projects[name]

    def _buffer(self, table: str, records: Sequence) -> None:
        self._pending.setdefault(table, []).extend(records)

    def add_commits(self, records: Sequence[CommitRecord]) -> None:
        self._buffer("commits", records)

    def add_file_renames(self, records: Sequence[FileRenameRecord]) -> None:
        self._buffer("file_renames", records)

    def add_branch(self, record: BranchRecord) -> None:
        self._buffer("branches", [record])

    def add_branch_commits(self, records: Sequence[BranchCommitRecord]) -> None:
        self._buffer("branch_commits", records)

    def add_lifecycle_events(self, records: Sequence[LifecycleRecord]) -> None:
        self._buffer("events", records)

    def flush(self) -> None:
        for table, records in self._pending.items():
            getattr(self, table).extend(records)
        self._pending = {}
        self.flushes += 1

    def discard(self) -> None:
        self._pending = {}

    def events_for_branch(self, branch_id: int) -> List[LifecycleRecord]:
        return [event for event in self.events if event.branch_id == branch_id]
