"""
crenv Provisioning - Result models.

Everything returned to the caller after a successful provisioning attempt.
The orchestrator keeps no reference to these objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from crenv.core.types import DonRole, InfraType


@dataclass(frozen=True)
class BlockchainOutput:
    """Connection info for one started chain."""

    chain_id: int
    chain_selector: int
    rpc_http_url: str
    rpc_ws_url: str = ""
    deployer_address: str = ""
    read_only: bool = False
    contract_addresses: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class JobDistributorOutput:
    """Connection info for the control-plane service."""

    external_grpc_url: str
    internal_grpc_url: str = ""
    internal_wsrpc_url: str = ""
    csa_encryption_key: str = ""


@dataclass(frozen=True)
class NodeEndpoint:
    """One running node."""

    name: str
    index: int
    external_url: str
    internal_host: str
    p2p_peer_id: str = ""
    account_address: str = ""


@dataclass(frozen=True)
class NodeGroupOutput:
    """One running node group."""

    name: str
    nodes: tuple[NodeEndpoint, ...]
    capabilities: tuple[str, ...] = ()
    don_types: tuple[DonRole, ...] = ()


@dataclass(frozen=True)
class GatewayEndpoint:
    """External connector endpoint exposed by the gateway node."""

    protocol: str
    host: str
    external_port: int
    path: str = "/"

    @property
    def url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.external_port}{self.path}"


@dataclass(frozen=True)
class DonTopology:
    """Resolved topology after startup."""

    workflow_don_id: int
    don_ids: dict[str, int]
    node_groups: tuple[NodeGroupOutput, ...]
    gateway: GatewayEndpoint | None = None


@dataclass(frozen=True)
class ProvisionedJob:
    """A job spec proposed to one node."""

    group: str
    node: str
    kind: str
    spec: str


@dataclass
class ProvisioningResult:
    """Output of a successful provisioning attempt."""

    blockchains: list[BlockchainOutput]
    topology: DonTopology
    job_distributor: JobDistributorOutput
    infra_type: InfraType
    generated_csa_key: str | None = None
    jobs: list[ProvisionedJob] = field(default_factory=list)
    capability_registrations: list[Any] = field(default_factory=list)

    @property
    def home_chain(self) -> BlockchainOutput:
        """The registry chain, always the first one."""
        return self.blockchains[0]
