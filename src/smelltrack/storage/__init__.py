"""Storage layer for analysis records."""

from smelltrack.storage.schema import (
    BranchCommitRecord,
    BranchRecord,
    CommitRecord,
    FileRenameRecord,
    LifecycleRecord,
)
from smelltrack.storage.sink import MemorySink, PersistenceSink
from smelltrack.storage.sqlite_sink import SqliteSink

__all__ = [
    "PersistenceSink",
    "MemorySink",
    "SqliteSink",
    "CommitRecord",
    "FileRenameRecord",
    "BranchRecord",
    "BranchCommitRecord",
    "LifecycleRecord",
]
