"""Base interface for smell feeds."""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Set, Union

from smelltrack.exceptions import NotCoveredError, SmellFeedError
from smelltrack.models import SmellInstance

SmellLike = Union[SmellInstance, Mapping[str, Any]]


class SmellFeed(ABC):
    """Per-commit smell snapshots produced by an external static analyzer."""

    @abstractmethod
    def is_covered(self, sha: str) -> bool:
        """Tell whether the analyzer processed this commit.

        Args:
            sha: Commit hash

        Returns:
            True if a snapshot is available for the commit
        """
        pass

    @abstractmethod
    def snapshot_at(self, sha: str) -> FrozenSet[SmellInstance]:
        """Return the smells present at a commit.

        Args:
            sha: Commit hash

        Returns:
            Set of smell instances (empty for a clean commit)

        Raises:
            NotCoveredError: If the commit was not analyzed
        """
        pass

    @abstractmethod
    def covered_commits(self) -> Set[str]:
        """Return the hashes of every analyzed commit."""
        pass


class InMemorySmellFeed(SmellFeed):
    """Smell feed backed by a mapping of commit hash to smells."""

    def __init__(self, snapshots: Mapping[str, Iterable[SmellLike]]) -> None:
        """Initialize the feed.

        Args:
            snapshots: Smells per commit; commits mapped to an empty
                iterable are covered and clean

        Raises:
            SmellFeedError: If a smell entry is malformed
        """
        self._snapshots: Dict[str, FrozenSet[SmellInstance]] = {
            sha: frozenset(_to_instance(sha, smell) for smell in smells)
            for sha, smells in snapshots.items()
        }

    def is_covered(self, sha: str) -> bool:
        return sha in self._snapshots

    def snapshot_at(self, sha: str) -> FrozenSet[SmellInstance]:
        try:
            return self._snapshots[sha]
        except KeyError:
            raise NotCoveredError(sha) from None

    def covered_commits(self) -> Set[str]:
        return set(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)


def _to_instance(sha: str, smell: SmellLike) -> SmellInstance:
    if isinstance(smell, SmellInstance):
        return smell
    try:
        return SmellInstance(**smell)
    except (TypeError, ValueError) as e:
        raise SmellFeedError(f"Invalid smell entry for commit {sha}: {smell!r}") from e
