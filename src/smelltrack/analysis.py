"""Analysis of whole projects: commits, branches, then smell lifecycles."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from smelltrack.extraction import CommitGraphProvider, GitCommitGraph
from smelltrack.feed import SmellFeed, load_feed
from smelltrack.models import Branch, RepositoryConfig, Settings, SmellInstance
from smelltrack.storage import (
    BranchCommitRecord,
    BranchRecord,
    CommitRecord,
    FileRenameRecord,
    PersistenceSink,
)
from smelltrack.topology import BranchReconstructor
from smelltrack.tracking import LifecycleAggregator, SmellDuplicationChecker

logger = structlog.get_logger(__name__)


@dataclass
class AnalysisSummary:
    """Summary of one project analysis."""
    project: str
    project_id: int
    commits: int = 0
    covered_commits: int = 0
    branches: int = 0
    events_per_category: Dict[str, int] = field(default_factory=dict)
    failed_branches: Dict[int, str] = field(default_factory=dict)
    unresolved: Dict[int, List[SmellInstance]] = field(default_factory=dict)


class ProjectAnalysis:
    """Runs the analysis steps of a single project, in order.

    1. commits and file renames are persisted in batches;
    2. branches are reconstructed and persisted;
    3. smell lifecycles are tracked branch by branch.
    """

    def __init__(
        self,
        name: str,
        graph: CommitGraphProvider,
        feed: SmellFeed,
        sink: PersistenceSink,
        settings: Optional[Settings] = None,
        url: Optional[str] = None,
    ) -> None:
        """Initialize the analysis.

        Args:
            name: Project name
            graph: Commit graph provider
            feed: Smell feed
            sink: Destination of all records
            settings: Application settings (defaults if None)
            url: Project URL stored with the project
        """
        self.name = name
        self.graph = graph
        self.feed = feed
        self.sink = sink
        self.settings = settings or Settings()
        self.url = url

    @classmethod
    def from_config(
        cls, config: RepositoryConfig, sink: PersistenceSink, settings: Optional[Settings] = None
    ) -> "ProjectAnalysis":
        """Build the analysis of a local repository and its smell feed file.

        Raises:
            ValueError: If the repository or feed is not configured correctly
            SmellFeedError: If the feed cannot be loaded
        """
        settings = settings or Settings()
        if config.feed_path is None:
            raise ValueError(f"No smell feed configured for project {config.name}")
        feed = load_feed(config.feed_path)
        graph = GitCommitGraph(
            config,
            feed=feed,
            rename_similarity=settings.rename_similarity,
            source_extensions=settings.source_extensions,
        )
        return cls(config.name, graph, feed, sink, settings=settings, url=config.url)

    def run(self) -> AnalysisSummary:
        """Run every step and return a summary.

        Raises:
            GraphIntegrityError: If the commit graph is malformed
        """
        project_id = self.sink.ensure_project(self.name, self.url)
        log = logger.bind(project=self.name, project_id=project_id)
        log.info("analysis_started")

        summary = AnalysisSummary(project=self.name, project_id=project_id)
        summary.commits, summary.covered_commits = self._persist_commits(project_id)

        branches = BranchReconstructor(self.graph, project_id).reconstruct()
        self._persist_branches(project_id, branches)
        summary.branches = len(branches)

        aggregator = LifecycleAggregator(
            project_id,
            self.graph,
            self.feed,
            self.sink,
            SmellDuplicationChecker(self.settings.similarity_threshold),
        )
        result = aggregator.run(branches)
        summary.events_per_category = dict(result.events_per_category)
        summary.failed_branches = result.failed_branches
        summary.unresolved = result.unresolved

        log.info(
            "analysis_done",
            commits=summary.commits,
            branches=summary.branches,
            events=result.total_events,
            failed_branches=len(result.failed_branches),
        )
        return summary

    def _persist_commits(self, project_id: int) -> Tuple[int, int]:
        commits = self.graph.chronological_commits()
        batch_size = self.settings.batch_size
        covered = 0
        commit_records: List[CommitRecord] = []
        rename_records: List[FileRenameRecord] = []

        for count, commit in enumerate(commits, start=1):
            details = self.graph.commit_details(commit.sha)
            commit_records.append(CommitRecord.from_commit(project_id, commit, details))
            rename_records.extend(
                FileRenameRecord.from_rename(project_id, commit.sha, rename)
                for rename in details.renames
            )
            if commit.in_feed:
                covered += 1

            if count % batch_size == 0:
                logger.info("commit_batch_persisted", project_id=project_id, size=len(commit_records))
                self._flush_commits(commit_records, rename_records)
                commit_records, rename_records = [], []

        self._flush_commits(commit_records, rename_records)
        return len(commits), covered

    def _flush_commits(
        self, commit_records: List[CommitRecord], rename_records: List[FileRenameRecord]
    ) -> None:
        self.sink.add_commits(commit_records)
        self.sink.add_file_renames(rename_records)
        self.sink.flush()

    def _persist_branches(self, project_id: int, branches: Sequence[Branch]) -> None:
        for branch in branches:
            self.sink.add_branch(BranchRecord.from_branch(project_id, branch))
            self.sink.add_branch_commits(
                [
                    BranchCommitRecord(
                        project_id=project_id, branch_id=branch.id, sha=commit.sha, ordinal=ordinal
                    )
                    for ordinal, commit in enumerate(branch.commits)
                ]
            )
        self.sink.flush()


def analyze_projects(
    configs: Sequence[RepositoryConfig],
    sink_factory: Callable[[], PersistenceSink],
    settings: Optional[Settings] = None,
) -> List[AnalysisSummary]:
    """Analyze several projects concurrently.

    Each project gets its own sink, graph and feed. A failing project is
    logged and left out of the returned summaries.

    Args:
        configs: Projects to analyze
        sink_factory: Creates one sink per project
        settings: Application settings (defaults if None)

    Returns:
        Summaries of the projects that completed, in completion order
    """
    settings = settings or Settings()
    summaries: List[AnalysisSummary] = []

    def run_one(config: RepositoryConfig) -> AnalysisSummary:
        sink = sink_factory()
        try:
            return ProjectAnalysis.from_config(config, sink, settings).run()
        finally:
            sink.close()

    with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
        futures = {executor.submit(run_one, config): config for config in configs}
        for future in as_completed(futures):
            config = futures[future]
            try:
                summaries.append(future.result())
            except Exception as e:
                logger.error("project_analysis_failed", project=config.name, error=str(e))

    return summaries
