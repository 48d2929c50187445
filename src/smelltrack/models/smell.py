"""Data models for smell instances and their lifecycle events."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SmellCategory(str, Enum):
    """Kind of lifecycle event recorded for a smell."""

    INTRODUCTION = "introduction"
    PRESENCE = "presence"
    REFACTOR = "refactor"
    LOST = "lost"


class SmellState(str, Enum):
    """State of a smell instance while walking a branch."""

    UNSEEN = "unseen"
    PRESENT = "present"
    REFACTORED = "refactored"
    LOST = "lost"


class SmellInstance(BaseModel):
    """A smell reported present at a commit by the smell feed.

    Two instances denote the same smell when their ``key`` is equal; the
    hosting file is informational and feeds the duplication checker.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "type": "LM",
                "instance": "onCreate#com.example.MainActivity",
                "file": "app/src/main/java/com/example/MainActivity.java",
            }
        },
    )

    type: str = Field(..., description="Smell type tag (e.g. LM, BLOB)")
    instance: str = Field(..., description="Stable identity of the smelly code unit")
    file: Optional[str] = Field(None, description="Source file hosting the instance")

    @property
    def key(self) -> Tuple[str, str]:
        return (self.type, self.instance)


class LifecycleEvent(BaseModel):
    """One recorded state transition of a smell on a branch.

    Lost events carry an ordinal interval ``[since, until)`` instead of a
    commit, since the exact commit of change is unknown.
    """

    model_config = ConfigDict(frozen=True)

    project_id: int = Field(..., description="Project identifier")
    branch_id: int = Field(..., description="Branch the event was observed on")
    category: SmellCategory = Field(..., description="Kind of event")
    smell: SmellInstance = Field(..., description="Smell instance concerned")
    sha: Optional[str] = Field(None, description="Commit the event is bound to")
    since: Optional[int] = Field(None, description="Lower ordinal of a lost interval")
    until: Optional[int] = Field(None, description="Upper ordinal of a lost interval")

    @model_validator(mode="after")
    def _check_binding(self) -> "LifecycleEvent":
        if self.category is SmellCategory.LOST:
            if self.since is None or self.until is None:
                raise ValueError("lost events need a since/until interval")
        elif self.sha is None:
            raise ValueError(f"{self.category.value} events need a commit sha")
        return self
