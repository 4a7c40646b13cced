"""
crenv Providers - Interfaces of the external collaborators.

Container, chain, control-plane and node mechanics live outside crenv.
Provisioning only talks to these protocols.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from crenv.config.models import BlockchainInput, JobDistributorInput
from crenv.provisioning.models import BlockchainOutput, GatewayEndpoint, NodeEndpoint
from crenv.topology.models import NodeGroupDescriptor

# =============================================================================
# Container engine
# =============================================================================


@runtime_checkable
class ContainerEngine(Protocol):
    """Local or remote container runtime."""

    async def list_containers(self, label: str) -> list[str]:
        """IDs of containers carrying ``label`` (``key=value``)."""
        ...

    async def remove_container(self, container_id: str, remove_volumes: bool = True) -> None:
        """Force-remove one container."""
        ...


# =============================================================================
# Blockchains
# =============================================================================


@runtime_checkable
class BlockchainHandle(Protocol):
    """A started chain."""

    chain_id: int
    rpc_http_url: str
    rpc_ws_url: str
    deployer_address: str
    # None when the provider cannot tell; resolved from known selectors
    chain_selector: int | None
    contract_addresses: dict[str, str]

    async def is_ready(self) -> bool:
        """Whether the RPC endpoint answers."""
        ...


@runtime_checkable
class BlockchainProvider(Protocol):
    async def start(self, spec: BlockchainInput, deployer_private_key: str) -> BlockchainHandle:
        ...


# =============================================================================
# Control plane
# =============================================================================


@runtime_checkable
class ControlPlaneHandle(Protocol):
    """A started job distributor."""

    external_grpc_url: str
    internal_grpc_url: str
    internal_wsrpc_url: str

    async def propose_job(self, node: str, spec: str) -> str:
        """Propose a TOML job spec to a node and return the proposal ID."""
        ...


@runtime_checkable
class ControlPlaneProvider(Protocol):
    async def start(self, spec: JobDistributorInput) -> ControlPlaneHandle:
        ...


# =============================================================================
# Node groups
# =============================================================================


@runtime_checkable
class NodeGroupHandle(Protocol):
    """A started node group."""

    name: str
    nodes: Sequence[NodeEndpoint]
    gateway: GatewayEndpoint | None


@runtime_checkable
class NodeGroupProvider(Protocol):
    async def start(
        self,
        group: NodeGroupDescriptor,
        custom_binaries: Sequence[str],
        blockchains: Sequence[BlockchainOutput],
    ) -> NodeGroupHandle:
        """
        Start every node of a group.

        Args:
            group: Planned group (node set, capabilities, roles).
            custom_binaries: Host paths to copy into each container.
            blockchains: Started chains the nodes connect to.
        """
        ...


@dataclass
class ProviderSet:
    """Everything provisioning needs from the outside world."""

    containers: ContainerEngine
    blockchains: BlockchainProvider
    control_plane: ControlPlaneProvider
    node_groups: NodeGroupProvider
