"""Unit tests for feed coverage gap handling."""

import pytest

from smelltrack.exceptions import CommitNotFoundError
from smelltrack.extraction import InMemoryCommitGraph
from smelltrack.topology import BranchReconstructor
from smelltrack.tracking import FORK_POINT_ORDINAL, GapHandler


@pytest.fixture
def linear_graph():
    """Six commits, c2 and c3 not analyzed by the smell feed."""
    history = [(f"c{i}", [f"c{i - 1}"] if i else []) for i in range(6)]
    return InMemoryCommitGraph.from_parents(history, covered={"c0", "c1", "c4", "c5"})


@pytest.fixture
def branched_graph():
    history = [
        ("a", []),
        ("b", ["a"]),
        ("c1", ["a"]),
        ("c2", ["c1"]),
        ("c3", ["c2"]),
        ("m", ["b", "c3"]),
    ]
    return InMemoryCommitGraph.from_parents(history, covered={"a", "b", "c1", "c3", "m"})


class TestProjectGapHandler:
    """Gap handling over global ordinals."""

    def test_ordinal(self, linear_graph):
        handler = GapHandler.for_project(linear_graph.chronological_commits())

        assert handler.ordinal(linear_graph.get_commit("c4")) == 4

    def test_has_gap(self, linear_graph):
        handler = GapHandler.for_project(linear_graph.chronological_commits())
        c = linear_graph.get_commit

        assert not handler.has_gap(c("c0"), c("c1"))
        assert handler.has_gap(c("c1"), c("c4"))
        assert not handler.has_gap(c("c4"), c("c5"))

    def test_resolve_gap(self, linear_graph):
        handler = GapHandler.for_project(linear_graph.chronological_commits())

        resolved = handler.resolve_gap(linear_graph.get_commit("c1"))

        assert resolved.sha == "c4"

    def test_resolve_gap_from_uncovered_commit(self, linear_graph):
        handler = GapHandler.for_project(linear_graph.chronological_commits())

        assert handler.resolve_gap(linear_graph.get_commit("c2")).sha == "c4"

    def test_resolve_gap_at_end(self, linear_graph):
        handler = GapHandler.for_project(linear_graph.chronological_commits())

        with pytest.raises(CommitNotFoundError) as exc_info:
            handler.resolve_gap(linear_graph.get_commit("c5"))

        assert exc_info.value.scope == "project"
        assert exc_info.value.ordinal == 6
        assert exc_info.value.branch_id is None


class TestBranchGapHandler:
    """Gap handling over in-branch ordinals."""

    def test_fork_point_ordinal(self, branched_graph):
        feature = BranchReconstructor(branched_graph).reconstruct()[1]
        handler = GapHandler.for_branch(feature)

        assert handler.ordinal(feature.fork_point) == FORK_POINT_ORDINAL
        assert handler.ordinal(branched_graph.get_commit("c1")) == 0
        assert handler.ordinal(branched_graph.get_commit("c3")) == 2

    def test_no_gap_after_fork_point(self, branched_graph):
        feature = BranchReconstructor(branched_graph).reconstruct()[1]
        handler = GapHandler.for_branch(feature)

        assert not handler.has_gap(feature.fork_point, branched_graph.get_commit("c1"))
        assert handler.has_gap(branched_graph.get_commit("c1"), branched_graph.get_commit("c3"))

    def test_global_ordinals_ignored(self, branched_graph):
        """b and m are far apart globally but adjacent on the trunk."""
        trunk = BranchReconstructor(branched_graph).reconstruct()[0]
        handler = GapHandler.for_branch(trunk)

        assert handler.ordinal(branched_graph.get_commit("m")) == 2
        assert not handler.has_gap(branched_graph.get_commit("b"), branched_graph.get_commit("m"))

    def test_resolve_gap_stays_on_branch(self, branched_graph):
        feature = BranchReconstructor(branched_graph).reconstruct()[1]
        handler = GapHandler.for_branch(feature)

        assert handler.resolve_gap(branched_graph.get_commit("c1")).sha == "c3"
        with pytest.raises(CommitNotFoundError) as exc_info:
            handler.resolve_gap(branched_graph.get_commit("c3"))
        assert exc_info.value.branch_id == feature.id
        assert "branch 1" in str(exc_info.value)

    def test_commit_outside_branch(self, branched_graph):
        feature = BranchReconstructor(branched_graph).reconstruct()[1]
        handler = GapHandler.for_branch(feature)

        with pytest.raises(ValueError, match="outside the branch ordinal space"):
            handler.ordinal(branched_graph.get_commit("b"))
