"""Commit graph extraction from a Git repository."""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import git
import structlog
from git import Repo

from smelltrack.exceptions import GraphIntegrityError
from smelltrack.extraction.base import CommitGraphProvider
from smelltrack.feed import SmellFeed
from smelltrack.models import Commit, CommitDetails, FileRename, RepositoryConfig

logger = structlog.get_logger(__name__)


class GitCommitGraph(CommitGraphProvider):
    """Commit graph of a local Git repository, read with GitPython.

    Commits reachable from the configured revision are numbered in
    chronological (topological) order: the root gets ordinal 0 and the
    revision itself the highest ordinal. Every commit comes after its
    parents, so ordinals increase along the first-parent chain, but commits
    of merged branches are interleaved with it. Global ordinals match
    first-parent history order only when the history has no merges, which
    is the only case where a project gap handler works in this space.
    """

    def __init__(
        self,
        config: RepositoryConfig,
        feed: Optional[SmellFeed] = None,
        rename_similarity: int = 50,
        source_extensions: Optional[Sequence[str]] = None,
    ) -> None:
        """Initialize the GitCommitGraph.

        Args:
            config: Repository configuration
            feed: Smell feed used to flag analyzed commits
            rename_similarity: Minimum rename score for git rename detection
            source_extensions: Only renames between these file types are kept
                (all files if None)

        Raises:
            ValueError: If repository path is invalid
        """
        self.config = config
        self.feed = feed
        self.rename_similarity = rename_similarity
        self.source_extensions = list(source_extensions) if source_extensions else None

        if not config.repo_path.exists():
            raise ValueError(f"Repository path does not exist: {config.repo_path}")

        try:
            self.repo = Repo(config.repo_path)
        except git.exc.InvalidGitRepositoryError as e:
            raise ValueError(f"Invalid Git repository: {config.repo_path}") from e

        self._commits: Optional[Dict[str, Commit]] = None
        self._head: Optional[str] = None
        self._details: Dict[str, CommitDetails] = {}

    def _load(self) -> Dict[str, Commit]:
        """Read the whole history once and assign global ordinals."""
        if self._commits is not None:
            return self._commits

        self._commits = {}
        if not self.repo.head.is_valid():
            logger.warning("empty_repository", repo=str(self.config.repo_path))
            return self._commits

        try:
            history = self.repo.iter_commits(self.config.revision, topo_order=True, reverse=True)
            for ordinal, git_commit in enumerate(history):
                commit = self._to_commit(git_commit, ordinal)
                self._commits[commit.sha] = commit
                self._head = commit.sha
        except (git.exc.BadName, git.GitCommandError, ValueError) as e:
            raise ValueError(f"Revision not found: {self.config.revision}") from e

        logger.info(
            "history_loaded",
            repo=str(self.config.repo_path),
            revision=self.config.revision,
            commits=len(self._commits),
        )
        return self._commits

    def _to_commit(self, git_commit: git.Commit, ordinal: int) -> Commit:
        sha = git_commit.hexsha
        return Commit(
            sha=sha,
            parents=tuple(p.hexsha for p in git_commit.parents),
            ordinal=ordinal,
            author_email=git_commit.author.email,
            timestamp=datetime.fromtimestamp(git_commit.committed_date),
            message=git_commit.message.strip(),
            in_feed=self.feed is not None and self.feed.is_covered(sha),
        )

    def head_commit(self) -> Optional[Commit]:
        commits = self._load()
        if self._head is None:
            return None
        return commits[self._head]

    def get_commit(self, sha: str) -> Commit:
        try:
            return self._load()[sha]
        except KeyError:
            raise GraphIntegrityError(f"Commit not found: {sha}") from None

    def chronological_commits(self) -> List[Commit]:
        return list(self._load().values())

    def commit_details(self, sha: str) -> CommitDetails:
        """Extract diff statistics and source file renames of a commit.

        Args:
            sha: Commit hash

        Returns:
            CommitDetails against the first parent
        """
        if sha in self._details:
            return self._details[sha]

        try:
            git_commit = self.repo.commit(sha)
        except (git.exc.BadName, ValueError) as e:
            raise GraphIntegrityError(f"Commit not found: {sha}") from e

        details = CommitDetails()
        try:
            total = git_commit.stats.total
            details.additions = total.get("insertions", 0)
            details.deletions = total.get("deletions", 0)
            details.files_changed = total.get("files", 0)
        except git.GitCommandError as e:
            logger.warning("commit_stats_unavailable", sha=sha, error=str(e))

        if git_commit.parents:
            details.renames = self._extract_renames(git_commit)

        self._details[sha] = details
        return details

    def _extract_renames(self, git_commit: git.Commit) -> List[FileRename]:
        """Detect file renames against the first parent.

        Args:
            git_commit: GitPython Commit object

        Returns:
            List of FileRename between tracked source files
        """
        renames = []
        parent = git_commit.parents[0]
        diff_index = parent.diff(git_commit, find_renames=f"{self.rename_similarity}%")

        for diff in diff_index:
            if not diff.renamed_file:
                continue
            old_path, new_path = diff.rename_from, diff.rename_to
            if not (self._is_source_file(old_path) and self._is_source_file(new_path)):
                continue

            score = getattr(diff, "score", None)
            rename = FileRename(
                old_path=old_path,
                new_path=new_path,
                similarity=score if score is not None else self.rename_similarity,
            )
            logger.debug(
                "file_renamed",
                sha=git_commit.hexsha,
                old=old_path,
                new=new_path,
                similarity=rename.similarity,
            )
            renames.append(rename)

        return renames

    def _is_source_file(self, file_path: Optional[str]) -> bool:
        """Check if a file should be tracked for renames.

        Args:
            file_path: File path

        Returns:
            True if the file has a tracked source extension
        """
        if not file_path:
            return False
        if not self.source_extensions:
            return True
        return Path(file_path).suffix in self.source_extensions
