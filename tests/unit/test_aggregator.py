"""Unit tests for lifecycle aggregation over all branches."""

import pytest

from smelltrack.exceptions import GraphIntegrityError
from smelltrack.extraction import InMemoryCommitGraph
from smelltrack.feed import InMemorySmellFeed
from smelltrack.models import SmellInstance
from smelltrack.storage import MemorySink
from smelltrack.topology import BranchReconstructor
from smelltrack.tracking import LifecycleAggregator

LONG_METHOD = SmellInstance(type="LM", instance="run#com.example.Main")
BLOB = SmellInstance(type="BLOB", instance="com.example.Feature")


class FailingFeed(InMemorySmellFeed):
    """Feed raising ``error`` when the snapshot of ``sha`` is requested."""

    def __init__(self, snapshots, sha, error):
        super().__init__(snapshots)
        self.failing_sha = sha
        self.error = error

    def snapshot_at(self, sha):
        if sha == self.failing_sha:
            raise self.error
        return super().snapshot_at(sha)


@pytest.fixture
def history():
    """Trunk a-b-m, feature c1-c2 forked at a and merged at m."""
    return [
        ("a", []),
        ("b", ["a"]),
        ("c1", ["a"]),
        ("c2", ["c1"]),
        ("m", ["b", "c2"]),
    ]


@pytest.fixture
def snapshots():
    return {
        "a": [LONG_METHOD],
        "b": [LONG_METHOD],
        "c1": [LONG_METHOD],
        "c2": [LONG_METHOD, BLOB],
        "m": [LONG_METHOD, BLOB],
    }


def run(history, feed, sink):
    graph = InMemoryCommitGraph.from_parents(history, covered=feed.covered_commits())
    branches = BranchReconstructor(graph).reconstruct()
    return LifecycleAggregator(7, graph, feed, sink).run(branches)


def test_all_branches(history, snapshots):
    sink = MemorySink()

    result = run(history, InMemorySmellFeed(snapshots), sink)

    assert result.analyzed_branches == [0, 1]
    assert result.failed_branches == {}
    assert sink.flushes == 2

    trunk = [(e.category, e.instance, e.sha) for e in sink.events_for_branch(0)]
    assert trunk == [
        ("introduction", LONG_METHOD.instance, "a"),
        ("presence", LONG_METHOD.instance, "b"),
        ("presence", BLOB.instance, "m"),
        ("presence", LONG_METHOD.instance, "m"),
    ]

    feature = [(e.category, e.instance, e.sha) for e in sink.events_for_branch(1)]
    assert feature == [
        ("presence", LONG_METHOD.instance, "c1"),
        ("introduction", BLOB.instance, "c2"),
        ("presence", LONG_METHOD.instance, "c2"),
    ]

    assert result.events_per_category == {"introduction": 2, "presence": 5}
    assert result.total_events == 7
    assert all(e.project_id == 7 for e in sink.events)


def test_smell_refactored_at_merge(history, snapshots):
    snapshots["m"] = [LONG_METHOD]
    sink = MemorySink()

    run(history, InMemorySmellFeed(snapshots), sink)

    feature = sink.events_for_branch(1)
    assert (feature[-1].category, feature[-1].instance, feature[-1].sha) == (
        "refactor",
        BLOB.instance,
        "m",
    )


def test_unresolved_smells_reported(history, snapshots):
    del snapshots["c2"]
    snapshots["m"] = []
    sink = MemorySink()

    result = run(history, InMemorySmellFeed(snapshots), sink)

    assert result.unresolved == {1: [LONG_METHOD]}


def test_single_branch_uses_global_ordinals():
    history = [("a", []), ("b", ["a"]), ("c", ["b"]), ("d", ["c"])]
    feed = InMemorySmellFeed({"a": [LONG_METHOD], "d": []})
    sink = MemorySink()

    run(history, feed, sink)

    lost = sink.events[-1]
    assert lost.category == "lost"
    assert (lost.since, lost.until) == (0, 3)


def test_branch_failure_is_isolated(history, snapshots):
    feed = FailingFeed(snapshots, "c1", RuntimeError("corrupted snapshot"))
    sink = MemorySink()

    result = run(history, feed, sink)

    assert result.analyzed_branches == [0]
    assert result.failed_branches == {1: "corrupted snapshot"}
    assert sink.events_for_branch(1) == []
    assert len(sink.events_for_branch(0)) == 4


def test_graph_integrity_error_is_fatal(history, snapshots):
    feed = FailingFeed(snapshots, "c1", GraphIntegrityError("broken"))

    with pytest.raises(GraphIntegrityError):
        run(history, feed, MemorySink())
