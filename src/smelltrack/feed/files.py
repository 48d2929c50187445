"""File-based smell feeds.

Two export layouts are supported:

* a JSON document ``{"commits": {"<sha>": [{"type": ..., "instance": ...}]}}``;
* a directory of per-type CSV exports (``<TYPE>.csv`` with ``commit`` and
  ``instance`` columns, optionally ``file``), plus an optional
  ``commits.csv`` listing every analyzed commit, so that commits analyzed
  without any smell are still covered.
"""

import csv
import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, List

import structlog

from smelltrack.exceptions import SmellFeedError
from smelltrack.feed.base import InMemorySmellFeed, SmellFeed, SmellLike

logger = structlog.get_logger(__name__)

COMMITS_FILE = "commits.csv"


class JsonSmellFeed(InMemorySmellFeed):
    """Smell feed loaded from a JSON export."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SmellFeedError(f"Unable to read smell feed {self.path}: {e}") from e

        commits = data.get("commits") if isinstance(data, dict) else None
        if not isinstance(commits, dict):
            raise SmellFeedError(f"Smell feed {self.path} has no 'commits' mapping")

        super().__init__(commits)
        logger.info("smell_feed_loaded", path=str(self.path), commits=len(self))


class CsvSmellFeed(InMemorySmellFeed):
    """Smell feed loaded from a directory of per-type CSV exports."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise SmellFeedError(f"Smell feed directory does not exist: {self.directory}")

        snapshots: Dict[str, List[SmellLike]] = defaultdict(list)

        commits_file = self.directory / COMMITS_FILE
        if commits_file.exists():
            for row in self._read_rows(commits_file):
                sha = (row.get("commit") or "").strip()
                if sha:
                    snapshots.setdefault(sha, [])

        for csv_file in sorted(self.directory.glob("*.csv")):
            if csv_file.name == COMMITS_FILE:
                continue
            smell_type = csv_file.stem
            for row in self._read_rows(csv_file):
                sha = (row.get("commit") or "").strip()
                instance = (row.get("instance") or "").strip()
                if not sha or not instance:
                    raise SmellFeedError(f"Missing commit or instance in {csv_file}: {row}")
                snapshots[sha].append(
                    {"type": smell_type, "instance": instance, "file": row.get("file") or None}
                )

        super().__init__(snapshots)
        logger.info("smell_feed_loaded", path=str(self.directory), commits=len(self))

    @staticmethod
    def _read_rows(path: Path) -> List[Dict[str, str]]:
        try:
            with open(path, "r", newline="") as f:
                return list(csv.DictReader(f))
        except (OSError, csv.Error) as e:
            raise SmellFeedError(f"Unable to read {path}: {e}") from e


def load_feed(path: Path) -> SmellFeed:
    """Load a smell feed, choosing the format from the path.

    Args:
        path: JSON file or directory of CSV exports

    Returns:
        Loaded smell feed

    Raises:
        SmellFeedError: If the path does not exist or cannot be parsed
    """
    path = Path(path)
    if path.is_dir():
        return CsvSmellFeed(path)
    if path.suffix.lower() == ".json":
        return JsonSmellFeed(path)
    raise SmellFeedError(f"Unsupported smell feed: {path}")
