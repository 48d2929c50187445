"""Branch topology reconstruction from a commit graph.

Every commit reachable from HEAD is assigned to exactly one branch. The
trunk (branch 0) is the first-parent chain of HEAD; each secondary parent of
a merge commit opens a new branch, walked later along its own first-parent
chain until it reaches a commit already owned by another branch (its fork
point).

Walks are processed from a FIFO queue and each runs to completion before
the next one starts, so a commit shared by two walks always belongs to the
walk that was enqueued first.
"""

from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

import structlog

from smelltrack.exceptions import GraphIntegrityError
from smelltrack.extraction.base import CommitGraphProvider
from smelltrack.models import Branch, Commit

logger = structlog.get_logger(__name__)

TRUNK_ID = 0

_VISITING = 1
_DONE = 2


class BranchReconstructor:
    """Partitions a commit graph into branches."""

    def __init__(self, graph: CommitGraphProvider, project_id: Optional[int] = None) -> None:
        """Initialize the reconstructor.

        Args:
            graph: Commit graph provider
            project_id: Project identifier, used for logging only
        """
        self.graph = graph
        self.project_id = project_id

    def reconstruct(self, head: Optional[Commit] = None) -> List[Branch]:
        """Reconstruct the branches of the history ending at ``head``.

        Args:
            head: Starting commit (defaults to the provider's head)

        Returns:
            Branches in discovery order, trunk first

        Raises:
            GraphIntegrityError: If a commit is missing or the graph has a cycle
        """
        if head is None:
            head = self.graph.head_commit()
        if head is None:
            logger.info("empty_history", project_id=self.project_id)
            return [Branch(id=TRUNK_ID)]

        commits = self._load_graph(head)

        claimed: Dict[str, int] = {}
        merge_points: Dict[int, Commit] = {}
        queue: Deque[Tuple[int, Commit]] = deque([(TRUNK_ID, head)])
        next_id = TRUNK_ID + 1
        branches: List[Branch] = []

        while queue:
            branch_id, start = queue.popleft()
            owner = claimed.get(start.sha)
            if owner is not None and owner != branch_id:
                logger.debug(
                    "branch_task_abandoned",
                    project_id=self.project_id,
                    branch_id=branch_id,
                    start=start.short_sha,
                    owner=owner,
                )
                continue

            body: List[Commit] = []
            fork_point: Optional[Commit] = None
            current = start
            while True:
                owner = claimed.get(current.sha)
                if owner is not None:
                    fork_point = current
                    break

                claimed[current.sha] = branch_id
                body.append(current)
                for parent_sha in current.parents[1:]:
                    merge_points[next_id] = current
                    queue.append((next_id, commits[parent_sha]))
                    next_id += 1

                if current.is_root:
                    break
                current = commits[current.parents[0]]

            body.reverse()
            branch = Branch(
                id=branch_id,
                commits=tuple(body),
                fork_point=fork_point,
                merge_point=merge_points.get(branch_id),
            )
            branches.append(branch)
            logger.debug(
                "branch_reconstructed",
                project_id=self.project_id,
                branch_id=branch_id,
                commits=len(body),
                fork=fork_point.short_sha if fork_point else None,
                merge=branch.merge_point.short_sha if branch.merge_point else None,
            )

        logger.info(
            "topology_reconstructed",
            project_id=self.project_id,
            branches=len(branches),
            commits=len(claimed),
        )
        return branches

    def _load_graph(self, head: Commit) -> Dict[str, Commit]:
        """Fetch every commit reachable from ``head``, rejecting cycles.

        Iterative depth-first search: a parent found on the current search
        path closes a cycle.
        """
        commits: Dict[str, Commit] = {head.sha: head}
        state: Dict[str, int] = {head.sha: _VISITING}
        stack = [(head.sha, iter(head.parents))]

        while stack:
            sha, parents = stack[-1]
            for parent_sha in parents:
                if parent_sha not in commits:
                    commits[parent_sha] = self.graph.get_commit(parent_sha)
                parent_state = state.get(parent_sha)
                if parent_state == _VISITING:
                    raise GraphIntegrityError(
                        f"Cycle detected in commit graph at {parent_sha} (from {sha})"
                    )
                if parent_state is None:
                    state[parent_sha] = _VISITING
                    stack.append((parent_sha, iter(commits[parent_sha].parents)))
                    break
            else:
                state[sha] = _DONE
                stack.pop()

        return commits
