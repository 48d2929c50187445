"""Exceptions raised by smelltrack."""

from typing import Optional


class SmellTrackError(Exception):
    """Base class for all smelltrack errors."""


class GraphIntegrityError(SmellTrackError):
    """The commit graph is malformed (missing commit, cycle).

    Fatal for the whole project analysis.
    """


class NotCoveredError(SmellTrackError):
    """The smell feed did not analyze the requested commit."""

    def __init__(self, sha: str) -> None:
        super().__init__(f"Commit not covered by the smell feed: {sha}")
        self.sha = sha


class SmellFeedError(SmellTrackError):
    """The smell feed could not be loaded or parsed."""


class CommitNotFoundError(SmellTrackError):
    """No feed-covered commit exists after the given ordinal."""

    def __init__(self, scope: str, ordinal: int, branch_id: Optional[int] = None) -> None:
        where = scope if branch_id is None else f"{scope} {branch_id}"
        super().__init__(f"No covered commit found from ordinal {ordinal} in {where}")
        self.scope = scope
        self.ordinal = ordinal
        self.branch_id = branch_id
