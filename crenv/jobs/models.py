"""
crenv Jobs - Job spec and capability registration models.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from crenv.provisioning.models import BlockchainOutput, JobDistributorOutput, NodeGroupOutput
from crenv.topology.models import NodeGroupDescriptor, PlannedTopology


@dataclass(frozen=True)
class JobSpec:
    """A TOML job spec for one node."""

    group: str
    node: str
    kind: str
    toml: str


@dataclass(frozen=True)
class CapabilityRegistration:
    """On-chain capability registration for one node group."""

    group: str
    labelled_name: str
    version: str
    capability_type: str
    config: dict[str, Any] = field(default_factory=dict)

    @property
    def capability_id(self) -> str:
        return f"{self.labelled_name}@{self.version}"


@dataclass
class JobSpecContext:
    """
    Inputs shared by all job spec factories of one provisioning pass.

    ``artifacts`` is written by earlier factories and read by later ones.
    """

    topology: PlannedTopology
    node_groups: dict[str, NodeGroupOutput]
    blockchains: list[BlockchainOutput]
    job_distributor: JobDistributorOutput
    don_ids: dict[str, int]
    artifacts: dict[str, Any] = field(default_factory=dict)

    @property
    def home_chain(self) -> BlockchainOutput:
        return self.blockchains[0]

    def groups_with(self, capability: str) -> list[tuple[NodeGroupDescriptor, NodeGroupOutput]]:
        """Planned groups running a capability, paired with their running output."""
        return [
            (group, self.node_groups[group.name])
            for group in self.topology.groups
            if group.has_capability(capability) and group.name in self.node_groups
        ]


JobSpecFactory = Callable[[JobSpecContext], list[JobSpec]]
ContractFactory = Callable[[NodeGroupDescriptor], list[CapabilityRegistration]]
