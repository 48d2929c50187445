"""Base interface for commit graph providers."""

from abc import ABC, abstractmethod
from collections import deque
from typing import Iterator, List, Optional, Set

from smelltrack.models import Commit, CommitDetails, FileRename


class CommitGraphProvider(ABC):
    """Read access to the commit graph of a project."""

    @abstractmethod
    def head_commit(self) -> Optional[Commit]:
        """Return the commit the analysis starts from, or None for an empty history."""
        pass

    @abstractmethod
    def get_commit(self, sha: str) -> Commit:
        """Return a commit by hash.

        Args:
            sha: Full commit hash

        Returns:
            The commit

        Raises:
            GraphIntegrityError: If the commit is unknown
        """
        pass

    def commit_details(self, sha: str) -> CommitDetails:
        """Return diff statistics and file renames of a commit.

        Providers without diff access report empty details.
        """
        return CommitDetails()

    def file_renames(self, sha: str) -> List[FileRename]:
        return self.commit_details(sha).renames

    def commits_reachable_from(self, commit: Commit) -> Iterator[Commit]:
        """Yield every commit reachable from ``commit``, including itself.

        Args:
            commit: Starting commit

        Yields:
            Commits in breadth-first order over parents
        """
        seen: Set[str] = {commit.sha}
        queue = deque([commit])
        while queue:
            current = queue.popleft()
            yield current
            for parent_sha in current.parents:
                if parent_sha not in seen:
                    seen.add(parent_sha)
                    queue.append(self.get_commit(parent_sha))

    def chronological_commits(self) -> List[Commit]:
        """Return every commit reachable from HEAD, ordered by global ordinal."""
        head = self.head_commit()
        if head is None:
            return []
        return sorted(self.commits_reachable_from(head), key=lambda c: c.ordinal)
