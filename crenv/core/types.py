"""
crenv Core - Shared types and enums.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TopologyMode(StrEnum):
    """Shape of the environment."""

    SIMPLIFIED = "simplified"
    FULL = "full"

    @property
    def expected_node_sets(self) -> int:
        """Number of node sets this topology requires."""
        return 1 if self is TopologyMode.SIMPLIFIED else 3


class DonRole(StrEnum):
    """Role tag carried by a node group."""

    WORKFLOW = "workflow"
    CAPABILITIES = "capabilities"
    GATEWAY = "gateway"


class InfraType(StrEnum):
    """Where the environment runs."""

    DOCKER = "docker"  # Local container engine
    CRIB = "crib"  # Remote cluster


class Capability(StrEnum):
    """Capability names understood by the nodes."""

    CONSENSUS = "ocr3"
    COMPUTE = "custom-compute"
    WRITE_EVM = "write-evm"
    WEB_API_TRIGGER = "web-api-trigger"
    WEB_API_TARGET = "web-api-target"
    CRON = "cron"
    LOG_EVENT_TRIGGER = "log-event-trigger"
    READ_CONTRACT = "read-contract"


class WorkflowTrigger(StrEnum):
    """Trigger used by the example workflow."""

    WEB_TRIGGER = "web-trigger"
    CRON = "cron"


# Always present in a simplified topology
MANDATORY_CAPABILITIES: tuple[str, ...] = (
    Capability.CONSENSUS,
    Capability.COMPUTE,
    Capability.WRITE_EVM,
    Capability.WEB_API_TRIGGER,
    Capability.WEB_API_TARGET,
)

# Label applied to every container started by the test framework
FRAMEWORK_LABEL = "framework=ctf"


@dataclass(frozen=True)
class StartupOutcome:
    """Result of one provisioning attempt, used only for telemetry."""

    success: bool
    elapsed_seconds: float
    infra_type: str
    has_built_image: bool = False
    error_message: str | None = None
    panicked: bool | None = None
