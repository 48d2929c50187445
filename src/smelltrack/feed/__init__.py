"""Smell feeds: per-commit snapshots from an external smell detector."""

from smelltrack.feed.base import InMemorySmellFeed, SmellFeed
from smelltrack.feed.files import CsvSmellFeed, JsonSmellFeed, load_feed

__all__ = [
    "SmellFeed",
    "InMemorySmellFeed",
    "JsonSmellFeed",
    "CsvSmellFeed",
    "load_feed",
]
