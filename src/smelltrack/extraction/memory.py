"""In-memory commit graph, for tests and replayed histories."""

from typing import Collection, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from smelltrack.exceptions import GraphIntegrityError
from smelltrack.extraction.base import CommitGraphProvider
from smelltrack.models import Commit, CommitDetails


class InMemoryCommitGraph(CommitGraphProvider):
    """Commit graph built from already-known commits."""

    def __init__(
        self,
        commits: Iterable[Commit],
        head: Optional[str] = None,
        details: Optional[Mapping[str, CommitDetails]] = None,
    ) -> None:
        """Initialize the graph.

        Args:
            commits: Commits of the history
            head: Hash of the head commit (defaults to the highest ordinal)
            details: Optional diff details per commit hash
        """
        self._commits: Dict[str, Commit] = {commit.sha: commit for commit in commits}
        self._details = dict(details or {})

        if head is None and self._commits:
            head = max(self._commits.values(), key=lambda c: c.ordinal).sha
        if head is not None and head not in self._commits:
            raise GraphIntegrityError(f"Head commit not found: {head}")
        self._head = head

    @classmethod
    def from_parents(
        cls,
        history: Sequence[Tuple[str, Sequence[str]]],
        covered: Optional[Collection[str]] = None,
        head: Optional[str] = None,
    ) -> "InMemoryCommitGraph":
        """Build a graph from ``(sha, parent shas)`` pairs in chronological order.

        Args:
            history: Commits oldest first; their position is the ordinal
            covered: Hashes analyzed by the smell feed (all if None)
            head: Hash of the head commit (defaults to the last one)

        Returns:
            InMemoryCommitGraph
        """
        commits = [
            Commit(
                sha=sha,
                parents=tuple(parents),
                ordinal=ordinal,
                in_feed=covered is None or sha in covered,
            )
            for ordinal, (sha, parents) in enumerate(history)
        ]
        return cls(commits, head=head)

    def head_commit(self) -> Optional[Commit]:
        if self._head is None:
            return None
        return self._commits[self._head]

    def get_commit(self, sha: str) -> Commit:
        try:
            return self._commits[sha]
        except KeyError:
            raise GraphIntegrityError(f"Commit not found: {sha}") from None

    def commit_details(self, sha: str) -> CommitDetails:
        return self._details.get(sha, CommitDetails())
