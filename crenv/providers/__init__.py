"""
crenv Providers - External collaborator interfaces.
"""

from crenv.providers.base import (
    BlockchainHandle,
    BlockchainProvider,
    ContainerEngine,
    ControlPlaneHandle,
    ControlPlaneProvider,
    NodeGroupHandle,
    NodeGroupProvider,
    ProviderSet,
)
from crenv.providers.loader import PROVIDERS_ENV_VAR, load_provider_set

__all__ = [
    "PROVIDERS_ENV_VAR",
    "BlockchainHandle",
    "BlockchainProvider",
    "ContainerEngine",
    "ControlPlaneHandle",
    "ControlPlaneProvider",
    "NodeGroupHandle",
    "NodeGroupProvider",
    "ProviderSet",
    "load_provider_set",
]
