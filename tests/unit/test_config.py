"""Unit tests for configuration models."""

from pathlib import Path

import pytest

from smelltrack.log import configure_logging
from smelltrack.models import RepositoryConfig, Settings


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("SMELLTRACK_BATCH_SIZE", raising=False)
    settings = Settings(_env_file=None)

    assert settings.batch_size == 1000
    assert settings.similarity_threshold == 0.75
    assert ".java" in settings.source_extensions


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SMELLTRACK_DATABASE_PATH", "/tmp/smells.sqlite")
    monkeypatch.setenv("SMELLTRACK_MAX_WORKERS", "8")

    settings = Settings(_env_file=None)

    assert settings.database_path == Path("/tmp/smells.sqlite")
    assert settings.max_workers == 8


def test_repository_config_defaults():
    config = RepositoryConfig(name="app", repo_path=Path("/repo"))

    assert config.revision == "HEAD"
    assert config.feed_path is None


def test_unknown_log_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("LOUD")
