"""Unit tests for branch topology reconstruction."""

import pytest

from smelltrack.exceptions import GraphIntegrityError
from smelltrack.extraction import InMemoryCommitGraph
from smelltrack.topology import TRUNK_ID, BranchReconstructor


def reconstruct(history, **kwargs):
    graph = InMemoryCommitGraph.from_parents(history, **kwargs)
    return BranchReconstructor(graph).reconstruct()


def shas(branch):
    return [commit.sha for commit in branch.commits]


def assert_partition(history, branches):
    seen = [sha for branch in branches for sha in shas(branch)]
    assert sorted(seen) == sorted(sha for sha, _ in history)
    for branch in branches:
        assert branch.fork_point is None or branch.fork_point.sha not in branch


class TestTopologies:
    """Reconstruction of typical merge topologies."""

    def test_no_merge(self):
        history = [("a", []), ("b", ["a"]), ("c", ["b"])]
        branches = reconstruct(history)

        assert len(branches) == 1
        trunk = branches[0]
        assert trunk.id == TRUNK_ID
        assert trunk.is_trunk
        assert shas(trunk) == ["a", "b", "c"]
        assert trunk.fork_point is None
        assert trunk.merge_point is None

    def test_single_merge(self):
        history = [("a", []), ("b", ["a"]), ("c", ["a"]), ("m", ["b", "c"])]
        branches = reconstruct(history)

        assert [b.id for b in branches] == [0, 1]
        trunk, feature = branches
        assert shas(trunk) == ["a", "b", "m"]
        assert shas(feature) == ["c"]
        assert feature.fork_point.sha == "a"
        assert feature.merge_point.sha == "m"
        assert_partition(history, branches)

    def test_single_merge_with_side_chain(self):
        history = [
            ("a", []),
            ("b", ["a"]),
            ("c", ["b"]),
            ("d", ["a"]),
            ("e", ["d"]),
            ("f", ["c", "e"]),
        ]
        branches = reconstruct(history)

        trunk, side = branches
        assert shas(trunk) == ["a", "b", "c", "f"]
        assert shas(side) == ["d", "e"]
        assert side.fork_point.sha == "a"
        assert side.merge_point.sha == "f"
        assert [side.ordinal_of(sha) for sha in ("d", "e")] == [0, 1]
        assert_partition(history, branches)

    def test_successive_merges(self):
        history = [
            ("a", []),
            ("f1", ["a"]),
            ("m1", ["a", "f1"]),
            ("f2", ["m1"]),
            ("m2", ["m1", "f2"]),
        ]
        branches = reconstruct(history)

        trunk, second, first = branches
        assert shas(trunk) == ["a", "m1", "m2"]
        assert (second.id, shas(second)) == (1, ["f2"])
        assert second.fork_point.sha == "m1"
        assert second.merge_point.sha == "m2"
        assert (first.id, shas(first)) == (2, ["f1"])
        assert first.fork_point.sha == "a"
        assert first.merge_point.sha == "m1"

    def test_overlapping_merges(self):
        """A branch merged twice is claimed by the walk enqueued first."""
        history = [
            ("a", []),
            ("b", ["a"]),
            ("m1", ["a", "b"]),
            ("c", ["b"]),
            ("m2", ["m1", "c"]),
        ]
        branches = reconstruct(history)

        assert [b.id for b in branches] == [0, 1]
        trunk, feature = branches
        assert shas(trunk) == ["a", "m1", "m2"]
        assert shas(feature) == ["b", "c"]
        assert feature.fork_point.sha == "a"
        assert feature.merge_point.sha == "m2"
        assert_partition(history, branches)

    def test_parallel_branches(self):
        history = [
            ("a", []),
            ("b", ["a"]),
            ("c", ["a"]),
            ("m1", ["a", "b"]),
            ("m2", ["m1", "c"]),
        ]
        branches = reconstruct(history)

        trunk, later, earlier = branches
        assert shas(trunk) == ["a", "m1", "m2"]
        assert shas(later) == ["c"]
        assert later.merge_point.sha == "m2"
        assert shas(earlier) == ["b"]
        assert earlier.merge_point.sha == "m1"
        assert later.fork_point.sha == earlier.fork_point.sha == "a"

    def test_nested_branch(self):
        history = [
            ("a", []),
            ("b", ["a"]),
            ("c", ["b"]),
            ("d", ["b", "c"]),
            ("m", ["a", "d"]),
        ]
        branches = reconstruct(history)

        trunk, outer, inner = branches
        assert shas(trunk) == ["a", "m"]
        assert shas(outer) == ["b", "d"]
        assert outer.fork_point.sha == "a"
        assert outer.merge_point.sha == "m"
        assert shas(inner) == ["c"]
        assert inner.fork_point.sha == "b"
        assert inner.merge_point.sha == "d"


class TestInvariants:
    """Properties holding for any history."""

    def test_root_belongs_to_trunk(self):
        history = [("a", []), ("b", ["a"]), ("c", ["a"]), ("m", ["b", "c"])]
        trunk = reconstruct(history)[0]

        assert trunk.first_commit.is_root

    def test_deterministic(self):
        history = [
            ("a", []),
            ("b", ["a"]),
            ("c", ["a"]),
            ("m1", ["a", "b"]),
            ("m2", ["m1", "c"]),
        ]
        first = [b.model_dump() for b in reconstruct(history)]
        second = [b.model_dump() for b in reconstruct(history)]

        assert first == second

    def test_in_branch_ordinals(self):
        history = [("a", []), ("b", ["a"]), ("c", ["a"]), ("m", ["b", "c"])]
        trunk = reconstruct(history)[0]

        assert trunk.ordinal_of("a") == 0
        assert trunk.ordinal_of("m") == 2
        assert trunk.ordinal_of("c") is None
        assert "b" in trunk
        assert "c" not in trunk

    def test_duplicate_merge_edge_is_abandoned(self):
        """The second walk towards the same parent leaves an unused identifier."""
        history = [("a", []), ("b", ["a"]), ("c", ["a"]), ("m", ["b", "c", "c"])]
        branches = reconstruct(history)

        assert [b.id for b in branches] == [0, 1]
        assert_partition(history, branches)

    def test_abandoned_walk_leaves_id_gap(self):
        history = [
            ("a", []),
            ("c", ["a"]),
            ("d", ["a"]),
            ("m2", ["a", "c"]),
            ("m3", ["m2", "d", "d"]),
        ]
        branches = reconstruct(history)

        # m3 enqueues 1 and 2 (d twice), then m2 enqueues 3 (c)
        assert [b.id for b in branches] == [0, 1, 3]
        assert shas(branches[1]) == ["d"]
        assert shas(branches[2]) == ["c"]
        assert_partition(history, branches)

    def test_explicit_head(self):
        history = [("a", []), ("b", ["a"]), ("c", ["b"])]
        graph = InMemoryCommitGraph.from_parents(history)
        branches = BranchReconstructor(graph).reconstruct(graph.get_commit("b"))

        assert shas(branches[0]) == ["a", "b"]


class TestErrors:
    """Malformed and empty histories."""

    def test_empty_history(self):
        branches = BranchReconstructor(InMemoryCommitGraph([])).reconstruct()

        assert len(branches) == 1
        assert branches[0].id == TRUNK_ID
        assert branches[0].commits == ()

    def test_cycle(self):
        history = [("a", ["c"]), ("b", ["a"]), ("c", ["b"])]

        with pytest.raises(GraphIntegrityError, match="Cycle"):
            reconstruct(history)

    def test_cycle_through_secondary_parent(self):
        history = [("a", []), ("b", ["a", "d"]), ("c", ["b"]), ("d", ["c"]), ("e", ["b"])]

        with pytest.raises(GraphIntegrityError, match="Cycle"):
            reconstruct(history, head="e")

    def test_missing_parent(self):
        history = [("b", ["a"]), ("c", ["b"])]

        with pytest.raises(GraphIntegrityError, match="not found"):
            reconstruct(history)
