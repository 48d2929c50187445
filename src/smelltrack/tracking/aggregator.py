"""Orchestration of smell lifecycle analysis over every branch of a project."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence

import structlog

from smelltrack.exceptions import GraphIntegrityError
from smelltrack.extraction.base import CommitGraphProvider
from smelltrack.feed import SmellFeed
from smelltrack.models import Branch, Commit, SmellInstance
from smelltrack.storage import LifecycleRecord, PersistenceSink
from smelltrack.tracking.analyzer import BranchSmellAnalyzer, SmellKey
from smelltrack.tracking.duplication import SmellDuplicationChecker
from smelltrack.tracking.gap import GapHandler

logger = structlog.get_logger(__name__)


@dataclass
class AggregationResult:
    """Outcome of the lifecycle analysis of a project."""
    events_per_category: Counter = field(default_factory=Counter)
    analyzed_branches: List[int] = field(default_factory=list)
    failed_branches: Dict[int, str] = field(default_factory=dict)
    unresolved: Dict[int, List[SmellInstance]] = field(default_factory=dict)

    @property
    def total_events(self) -> int:
        return sum(self.events_per_category.values())


class LifecycleAggregator:
    """Runs one branch analyzer per branch, trunk first, and persists the events.

    Each branch's events are flushed as one batch. A branch whose analysis
    fails is logged and skipped; the others are still analyzed.
    """

    def __init__(
        self,
        project_id: int,
        graph: CommitGraphProvider,
        feed: SmellFeed,
        sink: PersistenceSink,
        duplication_checker: Optional[SmellDuplicationChecker] = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            project_id: Project identifier
            graph: Commit graph provider
            feed: Smell feed
            sink: Destination of the lifecycle events
            duplication_checker: Checker for renamed instances (default settings if None)
        """
        self.project_id = project_id
        self.graph = graph
        self.feed = feed
        self.sink = sink
        self.duplication_checker = duplication_checker or SmellDuplicationChecker()

    def run(self, branches: Sequence[Branch]) -> AggregationResult:
        """Analyze every branch in discovery order.

        Args:
            branches: Branches from the reconstructor, trunk first

        Returns:
            AggregationResult

        Raises:
            GraphIntegrityError: If the commit graph turns out malformed
        """
        result = AggregationResult()
        project_handler = None
        if len(branches) == 1:
            project_handler = GapHandler.for_project(self.graph.chronological_commits())

        for branch in branches:
            try:
                analyzer = self._analyze_branch(branch, branches, project_handler)
                self.sink.add_lifecycle_events(
                    [LifecycleRecord.from_event(event) for event in analyzer.events]
                )
                self.sink.flush()
            except GraphIntegrityError:
                self.sink.discard()
                raise
            except Exception as e:
                self.sink.discard()
                result.failed_branches[branch.id] = str(e)
                logger.error(
                    "branch_analysis_failed",
                    project_id=self.project_id,
                    branch_id=branch.id,
                    error=str(e),
                )
                continue

            result.analyzed_branches.append(branch.id)
            result.events_per_category.update(event.category.value for event in analyzer.events)
            if analyzer.unresolved:
                result.unresolved[branch.id] = list(analyzer.unresolved)
            logger.info(
                "branch_analyzed",
                project_id=self.project_id,
                branch_id=branch.id,
                commits=len(branch.commits),
                events=len(analyzer.events),
                unresolved=len(analyzer.unresolved),
            )

        return result

    def _analyze_branch(
        self,
        branch: Branch,
        branches: Sequence[Branch],
        project_handler: Optional[GapHandler],
    ) -> BranchSmellAnalyzer:
        gap_handler = project_handler or GapHandler.for_branch(branch)

        seed: FrozenSet[SmellInstance] = frozenset()
        if branch.fork_point is not None:
            seed = self._last_known_snapshot(branch.fork_point)

        analyzer = BranchSmellAnalyzer(
            self.project_id,
            branch,
            gap_handler,
            self.duplication_checker,
            seed=seed,
            merged_smells=self._merged_smells(branch, branches),
            renames=self.graph.file_renames,
        )

        final_snapshot = None
        merge_point = branch.merge_point
        if merge_point is not None:
            if merge_point.in_feed:
                final_snapshot = self.feed.snapshot_at(merge_point.sha)
            else:
                logger.debug(
                    "merge_point_not_covered",
                    project_id=self.project_id,
                    branch_id=branch.id,
                    merge=merge_point.short_sha,
                )

        analyzer.analyze(self.feed, final_snapshot, merge_point)
        return analyzer

    def _merged_smells(
        self, branch: Branch, branches: Sequence[Branch]
    ) -> Dict[str, FrozenSet[SmellKey]]:
        """Smells brought by the branches merged into ``branch``, per merge commit."""
        merged: Dict[str, FrozenSet[SmellKey]] = {}
        for other in branches:
            merge_point = other.merge_point
            if merge_point is None or merge_point.sha not in branch:
                continue
            last = other.last_commit
            if last is None:
                continue
            keys = frozenset(smell.key for smell in self._last_known_snapshot(last))
            merged[merge_point.sha] = merged.get(merge_point.sha, frozenset()) | keys
        return merged

    def _last_known_snapshot(self, commit: Commit) -> FrozenSet[SmellInstance]:
        """Smells of the nearest covered commit at or before ``commit`` on its first-parent chain."""
        current: Optional[Commit] = commit
        while current is not None:
            if current.in_feed:
                return self.feed.snapshot_at(current.sha)
            current = self.graph.get_commit(current.parents[0]) if current.parents else None
        return frozenset()
