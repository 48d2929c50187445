"""Shared fixtures."""

import json
import tempfile
from pathlib import Path

import git
import pytest


def commit_file(repo: git.Repo, repo_path: Path, name: str, content: str, message: str) -> git.Commit:
    (repo_path / name).write_text(content)
    repo.index.add([name])
    return repo.index.commit(message)


@pytest.fixture
def merge_repo():
    """Create a repository with one feature branch merged into the main line.

    History::

        A --- B ------- M
         \\            /
          C ---------
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        repo_path = Path(tmpdir)
        repo = git.Repo.init(repo_path)

        repo.config_writer().set_value("user", "name", "Test User").release()
        repo.config_writer().set_value("user", "email", "test@example.com").release()

        a = commit_file(repo, repo_path, "Main.java", "class Main {}\n", "Initial commit")
        main = repo.active_branch
        feature = repo.create_head("feature")

        b = commit_file(repo, repo_path, "Util.java", "class Util {}\n", "Add util")

        feature.checkout()
        c = commit_file(repo, repo_path, "Feature.java", "class Feature {}\n", "Add feature")

        main.checkout()
        base = repo.merge_base(main, feature)[0]
        repo.index.merge_tree(feature.commit, base=base)
        m = repo.index.commit("Merge feature", parent_commits=(main.commit, feature.commit))
        main.checkout(force=True)

        yield repo_path, {"A": a.hexsha, "B": b.hexsha, "C": c.hexsha, "M": m.hexsha}


@pytest.fixture
def merge_feed(merge_repo, tmp_path):
    """JSON smell feed over ``merge_repo``: one smell on the trunk, one on the feature."""
    repo_path, shas = merge_repo
    smell = {"type": "LM", "instance": "run#Main", "file": "Main.java"}
    feature_smell = {"type": "BLOB", "instance": "Feature", "file": "Feature.java"}
    data = {
        "commits": {
            shas["A"]: [smell],
            shas["B"]: [smell],
            shas["C"]: [smell, feature_smell],
            shas["M"]: [smell],
        }
    }
    feed_path = tmp_path / "smells.json"
    feed_path.write_text(json.dumps(data))
    return feed_path
