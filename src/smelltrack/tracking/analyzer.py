"""Smell lifecycle analysis along one branch."""

from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from smelltrack.feed import SmellFeed
from smelltrack.models import (
    Branch,
    Commit,
    FileRename,
    LifecycleEvent,
    SmellCategory,
    SmellInstance,
    SmellState,
)
from smelltrack.tracking.duplication import SmellDuplicationChecker
from smelltrack.tracking.gap import GapHandler

logger = structlog.get_logger(__name__)

SmellKey = Tuple[str, str]


def _no_renames(sha: str) -> List[FileRename]:
    return []


class BranchSmellAnalyzer:
    """Walks the covered commits of a branch and emits smell lifecycle events.

    Consecutive snapshots are compared: a new instance is introduced, a
    persisting one is present, a vanished one is refactored, or lost when
    uncovered commits separate the two snapshots. State is kept per
    instance and discarded with the analyzer.
    """

    def __init__(
        self,
        project_id: int,
        branch: Branch,
        gap_handler: GapHandler,
        duplication_checker: SmellDuplicationChecker,
        seed: Iterable[SmellInstance] = (),
        merged_smells: Optional[Mapping[str, FrozenSet[SmellKey]]] = None,
        renames: Callable[[str], Sequence[FileRename]] = _no_renames,
    ) -> None:
        """Initialize the analyzer.

        Args:
            project_id: Project identifier
            branch: Branch to walk
            gap_handler: Gap handler working in this branch's ordinal space
            duplication_checker: Checker correlating renamed instances
            seed: Smells inherited from the fork point
            merged_smells: For merge commits of this branch, the smell keys
                present on the merged branch, which are not introductions
            renames: File renames of a commit, by hash
        """
        self.project_id = project_id
        self.branch = branch
        self.gap_handler = gap_handler
        self.duplication_checker = duplication_checker
        self.merged_smells = merged_smells or {}
        self.renames = renames

        self.events: List[LifecycleEvent] = []
        self.unresolved: List[SmellInstance] = []
        self.states: Dict[SmellKey, SmellState] = {}

        self._current: Dict[SmellKey, SmellInstance] = {}
        self._previous: Optional[Commit] = None
        self._ended = False

        seed_smells = {smell.key: smell for smell in seed}
        if seed_smells and branch.fork_point is not None:
            self._current = seed_smells
            self._previous = branch.fork_point
            for key in seed_smells:
                self.states[key] = SmellState.PRESENT

    def analyze(
        self,
        feed: SmellFeed,
        final_snapshot: Optional[Iterable[SmellInstance]] = None,
        end_commit: Optional[Commit] = None,
    ) -> List[LifecycleEvent]:
        """Walk every covered commit of the branch, then close the branch.

        Args:
            feed: Smell feed providing snapshots
            final_snapshot: Smells at the merge point (None for the trunk)
            end_commit: The merge point commit

        Returns:
            Events in emission order
        """
        for commit in self.branch.commits:
            if commit.in_feed:
                self.notify_commit(commit, feed.snapshot_at(commit.sha))
        self.notify_end(final_snapshot, end_commit)
        return self.events

    def state_of(self, smell: SmellInstance) -> SmellState:
        return self.states.get(smell.key, SmellState.UNSEEN)

    def notify_commit(self, commit: Commit, snapshot: Iterable[SmellInstance]) -> None:
        """Compare the smells of a covered commit with the previous snapshot.

        Args:
            commit: Covered commit of this branch
            snapshot: Smells present at the commit
        """
        if self._ended:
            raise RuntimeError(f"Branch {self.branch.id} analysis already ended")

        smells = {smell.key: smell for smell in snapshot}
        inherited = self.merged_smells.get(commit.sha, frozenset())
        disappeared = [
            smell for key, smell in sorted(self._current.items()) if key not in smells
        ]
        renames = self.renames(commit.sha) if disappeared else []

        introduced: List[SmellInstance] = []
        present: List[SmellInstance] = []
        for key, smell in sorted(smells.items()):
            if key in self._current or key in inherited:
                present.append(smell)
                continue
            original = None
            if disappeared:
                original = self.duplication_checker.find_original(smell, disappeared, renames)
            if original is not None:
                disappeared.remove(original)
                self.states.pop(original.key, None)
                present.append(smell)
            else:
                introduced.append(smell)

        for smell in introduced:
            self._emit(SmellCategory.INTRODUCTION, smell, commit)
            self.states[smell.key] = SmellState.PRESENT
        for smell in present:
            self._emit(SmellCategory.PRESENCE, smell, commit)
            self.states[smell.key] = SmellState.PRESENT

        if disappeared:
            if self._previous is not None and self.gap_handler.has_gap(self._previous, commit):
                since = self.gap_handler.ordinal(self._previous)
                until = self.gap_handler.ordinal(self.gap_handler.resolve_gap(self._previous))
                for smell in disappeared:
                    self._emit_lost(smell, since, until)
            else:
                for smell in disappeared:
                    self._emit(SmellCategory.REFACTOR, smell, commit)
                    self.states[smell.key] = SmellState.REFACTORED

        self._current = smells
        self._previous = commit

    def notify_end(
        self,
        final_snapshot: Optional[Iterable[SmellInstance]] = None,
        end_commit: Optional[Commit] = None,
    ) -> None:
        """Close the branch against the smells of the commit it was merged into.

        Smells still present on the branch but missing at the merge point
        are refactored at the merge point when the branch's last commit was
        analyzed. When the branch tail is uncovered, the change cannot be
        dated on this branch and they are left unresolved.

        Args:
            final_snapshot: Smells at the merge point, or None to leave the
                remaining smells present
            end_commit: The merge point commit
        """
        if self._ended:
            return
        self._ended = True

        if final_snapshot is None or end_commit is None:
            return

        final = {smell.key for smell in final_snapshot}
        missing = [smell for key, smell in sorted(self._current.items()) if key not in final]
        if not missing:
            return

        last = self.branch.last_commit
        if self._previous is not None and last is not None and self._previous.sha == last.sha:
            for smell in missing:
                self._emit(SmellCategory.REFACTOR, smell, end_commit)
                self.states[smell.key] = SmellState.REFACTORED
            return

        # no covered commit follows on this branch to date the change
        self.unresolved.extend(missing)
        logger.warning(
            "smells_unresolved",
            project_id=self.project_id,
            branch_id=self.branch.id,
            count=len(missing),
            last_analyzed=self._previous.sha if self._previous else None,
        )

    def _emit(self, category: SmellCategory, smell: SmellInstance, commit: Commit) -> None:
        self.events.append(
            LifecycleEvent(
                project_id=self.project_id,
                branch_id=self.branch.id,
                category=category,
                smell=smell,
                sha=commit.sha,
            )
        )

    def _emit_lost(self, smell: SmellInstance, since: int, until: int) -> None:
        self.events.append(
            LifecycleEvent(
                project_id=self.project_id,
                branch_id=self.branch.id,
                category=SmellCategory.LOST,
                smell=smell,
                since=since,
                until=until,
            )
        )
        self.states[smell.key] = SmellState.LOST
