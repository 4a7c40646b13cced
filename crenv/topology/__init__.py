"""
crenv Topology - DON layout planning.
"""

from crenv.topology.models import NO_BOOTSTRAP, NodeGroupDescriptor, PlannedTopology
from crenv.topology.planner import apply_shared_image, plan_topology

__all__ = [
    "NO_BOOTSTRAP",
    "NodeGroupDescriptor",
    "PlannedTopology",
    "apply_shared_image",
    "plan_topology",
]
