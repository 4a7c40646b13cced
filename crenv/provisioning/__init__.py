"""
crenv Provisioning - Bring up chains, control plane and node groups.

Entry point: ``crenv.provisioning.orchestrator.provision``.
"""

from crenv.provisioning.models import (
    BlockchainOutput,
    DonTopology,
    GatewayEndpoint,
    JobDistributorOutput,
    NodeEndpoint,
    NodeGroupOutput,
    ProvisionedJob,
    ProvisioningResult,
)

__all__ = [
    "BlockchainOutput",
    "DonTopology",
    "GatewayEndpoint",
    "JobDistributorOutput",
    "NodeEndpoint",
    "NodeGroupOutput",
    "ProvisionedJob",
    "ProvisioningResult",
]
