"""
crenv Config - Configuration management.
"""

from crenv.config.loader import (
    load_config,
    load_config_for_topology,
    resolve_config_paths,
    resolve_deployer_key,
)
from crenv.config.models import (
    BlockchainInput,
    CribInput,
    EnvironmentConfig,
    ExtraCapabilitiesConfig,
    InfraInput,
    JobDistributorInput,
    NodeSetInput,
    NodeSpec,
    ProvisioningRequest,
)

__all__ = [
    "BlockchainInput",
    "CribInput",
    "EnvironmentConfig",
    "ExtraCapabilitiesConfig",
    "InfraInput",
    "JobDistributorInput",
    "NodeSetInput",
    "NodeSpec",
    "ProvisioningRequest",
    "load_config",
    "load_config_for_topology",
    "resolve_config_paths",
    "resolve_deployer_key",
]
