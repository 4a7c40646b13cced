"""
crenv Core - Shared context, types and errors.
"""

from crenv.core.context import CancellationToken, ProvisioningContext
from crenv.core.exceptions import (
    ConfigurationError,
    CrenvError,
    ProvisioningError,
    ResolutionError,
)
from crenv.core.types import (
    Capability,
    DonRole,
    InfraType,
    StartupOutcome,
    TopologyMode,
    WorkflowTrigger,
)

__all__ = [
    "CancellationToken",
    "Capability",
    "ConfigurationError",
    "CrenvError",
    "DonRole",
    "InfraType",
    "ProvisioningContext",
    "ProvisioningError",
    "ResolutionError",
    "StartupOutcome",
    "TopologyMode",
    "WorkflowTrigger",
]
