"""
crenv Topology - Node group descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from crenv.config.models import NodeSetInput
from crenv.core.types import DonRole, TopologyMode

NO_BOOTSTRAP = -1


@dataclass(frozen=True)
class NodeGroupDescriptor:
    """
    One node group (DON) to start.

    Built once by the planner and only read afterwards.
    """

    node_set: NodeSetInput
    capabilities: tuple[str, ...]
    don_types: tuple[DonRole, ...]
    bootstrap_index: int = NO_BOOTSTRAP
    gateway_index: int | None = None

    def __post_init__(self) -> None:
        if self.bootstrap_index < NO_BOOTSTRAP:
            raise ValueError(f"bootstrap_index must be >= -1, got {self.bootstrap_index}")
        if self.bootstrap_index >= self.node_set.node_count:
            raise ValueError(
                f"bootstrap_index {self.bootstrap_index} out of range for "
                f"{self.node_set.node_count} node(s) in '{self.name}'"
            )
        if self.gateway_index is not None and not 0 <= self.gateway_index < self.node_set.node_count:
            raise ValueError(
                f"gateway_index {self.gateway_index} out of range for '{self.name}'"
            )

    @property
    def name(self) -> str:
        return self.node_set.name

    @property
    def has_bootstrap(self) -> bool:
        return self.bootstrap_index != NO_BOOTSTRAP

    def has_role(self, role: DonRole) -> bool:
        return role in self.don_types

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True)
class PlannedTopology:
    """Output of the planner: ordered groups plus host binary paths."""

    mode: TopologyMode
    groups: tuple[NodeGroupDescriptor, ...]
    binary_paths: dict[str, str] = field(default_factory=dict)
    shared_image: str = ""

    @property
    def workflow_group(self) -> NodeGroupDescriptor:
        """The group tagged as the workflow DON."""
        for group in self.groups:
            if group.has_role(DonRole.WORKFLOW):
                return group
        raise LookupError("topology has no workflow DON")

    @property
    def gateway_group(self) -> NodeGroupDescriptor | None:
        """The group exposing the gateway connector, if any."""
        for group in self.groups:
            if group.has_role(DonRole.GATEWAY) and group.gateway_index is not None:
                return group
        return None
