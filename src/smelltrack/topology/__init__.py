"""Branch topology reconstruction."""

from smelltrack.topology.reconstructor import TRUNK_ID, BranchReconstructor

__all__ = ["BranchReconstructor", "TRUNK_ID"]
