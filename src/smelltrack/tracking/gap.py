"""Detection and resolution of gaps in the smell feed coverage.

The external analyzer may skip commits. Two consecutive covered commits
whose ordinals differ by more than one hide a gap: a smell that disappears
across it cannot be bound to a precise commit.

A handler works in one ordinal space. The project handler uses global
ordinals over the whole history; the branch handler uses in-branch ordinals
and only searches that branch, its fork point standing at ordinal -1.
"""

from bisect import bisect_right
from typing import Dict, List, Optional, Sequence

from smelltrack.exceptions import CommitNotFoundError
from smelltrack.models import Branch, Commit

FORK_POINT_ORDINAL = -1


class GapHandler:
    """Finds gaps between covered commits in a given ordinal space."""

    def __init__(
        self,
        scope: str,
        ordinals: Dict[str, int],
        commits: Sequence[Commit],
        branch_id: Optional[int] = None,
    ) -> None:
        """Initialize the handler. Use ``for_project`` or ``for_branch``.

        Args:
            scope: Name of the ordinal space, for error reporting
            ordinals: Ordinal of every known commit hash
            commits: Searchable commits
            branch_id: Branch searched, for branch scoped handlers
        """
        self.scope = scope
        self.branch_id = branch_id
        self._ordinals = ordinals

        covered = sorted(
            (commit for commit in commits if commit.in_feed),
            key=lambda commit: ordinals[commit.sha],
        )
        self._covered_ordinals: List[int] = [ordinals[commit.sha] for commit in covered]
        self._covered_commits: List[Commit] = covered

    @classmethod
    def for_project(cls, commits: Sequence[Commit]) -> "GapHandler":
        """Handler over project-wide ordinals."""
        return cls("project", {commit.sha: commit.ordinal for commit in commits}, commits)

    @classmethod
    def for_branch(cls, branch: Branch) -> "GapHandler":
        """Handler over the in-branch ordinals of ``branch`` only."""
        ordinals = dict(branch.ordinals)
        if branch.fork_point is not None:
            ordinals[branch.fork_point.sha] = FORK_POINT_ORDINAL
        return cls("branch", ordinals, branch.commits, branch_id=branch.id)

    def ordinal(self, commit: Commit) -> int:
        """Return the ordinal of a commit in this handler's space."""
        try:
            return self._ordinals[commit.sha]
        except KeyError:
            raise ValueError(
                f"Commit {commit.short_sha} is outside the {self.scope} ordinal space"
            ) from None

    def has_gap(self, previous: Commit, following: Commit) -> bool:
        """Tell whether uncovered commits separate two consecutive covered commits."""
        return abs(self.ordinal(following) - self.ordinal(previous)) > 1

    def resolve_gap(self, previous: Commit) -> Commit:
        """Find the nearest covered commit strictly after ``previous``.

        Args:
            previous: Last covered commit before the gap

        Returns:
            The next covered commit

        Raises:
            CommitNotFoundError: If no covered commit follows before the end
        """
        start = self.ordinal(previous)
        index = bisect_right(self._covered_ordinals, start)
        if index == len(self._covered_ordinals):
            raise CommitNotFoundError(self.scope, start + 1, self.branch_id)
        return self._covered_commits[index]
