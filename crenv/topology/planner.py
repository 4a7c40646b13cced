"""
crenv Topology - Planner.

Turns a topology mode and the configured node sets into node group
descriptors. Optional capabilities are opt-in: they are only added when a
binary path is configured for them or a plugins image is used.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from loguru import logger

from crenv.config.models import ExtraCapabilitiesConfig, NodeSetInput
from crenv.core.exceptions import TopologyMismatchError
from crenv.core.types import MANDATORY_CAPABILITIES, Capability, DonRole, TopologyMode
from crenv.topology.models import NO_BOOTSTRAP, NodeGroupDescriptor, PlannedTopology


class _CapabilityGate:
    """Collects opt-in capabilities and the host paths they need."""

    def __init__(self, plugins_image: str) -> None:
        self.plugins_image = plugins_image
        self.binary_paths: dict[str, str] = {}

    def admit(self, capability: str, binary_path: str, into: list[str]) -> None:
        if binary_path or self.plugins_image:
            into.append(capability)
            self.binary_paths[capability] = binary_path
        else:
            logger.debug(f"Skipping capability '{capability}': no binary path configured")


def _check_count(mode: TopologyMode, node_sets: Sequence[NodeSetInput]) -> None:
    if len(node_sets) != mode.expected_node_sets:
        raise TopologyMismatchError(mode.value, mode.expected_node_sets, len(node_sets))


def apply_shared_image(node_set: NodeSetInput, image: str) -> NodeSetInput:
    """
    Point every node of a set at a prebuilt image.

    Build directives are cleared, not merged: a prebuilt image cannot be
    combined with a local build.
    """
    specs = [
        spec.model_copy(update={"image": image, "docker_context": "", "docker_file_path": ""})
        for spec in node_set.node_specs
    ]
    return node_set.model_copy(update={"node_specs": specs})


def plan_topology(
    mode: TopologyMode,
    node_sets: Sequence[NodeSetInput],
    extra_capabilities: ExtraCapabilitiesConfig | None = None,
    extra_binaries: Mapping[str, str] | None = None,
    plugins_image: str = "",
) -> PlannedTopology:
    """
    Plan node groups for a topology.

    Args:
        mode: Topology mode.
        node_sets: Configured node sets, in DON order.
        extra_capabilities: Host paths of the optional built-in capabilities.
        extra_binaries: Additional capability name -> host path.
        plugins_image: Image with every capability included.

    Returns:
        PlannedTopology with ordered descriptors and binary paths.

    Raises:
        TopologyMismatchError: If the node set count does not match the mode.
    """
    _check_count(mode, node_sets)

    extras = extra_capabilities or ExtraCapabilitiesConfig()
    binaries = dict(extra_binaries or {})
    gate = _CapabilityGate(plugins_image)

    if plugins_image:
        node_sets = [apply_shared_image(node_set, plugins_image) for node_set in node_sets]

    if mode == TopologyMode.SIMPLIFIED:
        capabilities = list(MANDATORY_CAPABILITIES)
        gate.admit(Capability.CRON, extras.cron_capability_binary_path, capabilities)
        gate.admit(Capability.LOG_EVENT_TRIGGER, extras.log_event_trigger_binary_path, capabilities)
        gate.admit(Capability.READ_CONTRACT, extras.read_contract_capability_binary_path, capabilities)
        for name, path in binaries.items():
            gate.admit(name, path, capabilities)

        groups = (
            NodeGroupDescriptor(
                node_set=node_sets[0],
                capabilities=tuple(capabilities),
                don_types=(DonRole.WORKFLOW, DonRole.GATEWAY),
                bootstrap_index=0,
                gateway_index=0,
            ),
        )
    else:
        workflow_capabilities: list[str] = [
            Capability.CONSENSUS,
            Capability.COMPUTE,
            Capability.WEB_API_TRIGGER,
        ]
        gate.admit(Capability.CRON, extras.cron_capability_binary_path, workflow_capabilities)
        gate.admit(
            Capability.LOG_EVENT_TRIGGER, extras.log_event_trigger_binary_path, workflow_capabilities
        )
        for name, path in binaries.items():
            gate.admit(name, path, workflow_capabilities)

        capabilities_don: list[str] = [Capability.WRITE_EVM, Capability.WEB_API_TARGET]
        gate.admit(
            Capability.READ_CONTRACT, extras.read_contract_capability_binary_path, capabilities_don
        )

        groups = (
            NodeGroupDescriptor(
                node_set=node_sets[0],
                capabilities=tuple(workflow_capabilities),
                don_types=(DonRole.WORKFLOW,),
                bootstrap_index=0,
            ),
            NodeGroupDescriptor(
                node_set=node_sets[1],
                capabilities=tuple(capabilities_don),
                don_types=(DonRole.CAPABILITIES,),
                bootstrap_index=NO_BOOTSTRAP,
            ),
            NodeGroupDescriptor(
                node_set=node_sets[2],
                capabilities=(),
                don_types=(DonRole.GATEWAY,),
                bootstrap_index=NO_BOOTSTRAP,
                gateway_index=0,
            ),
        )

    logger.info(f"Planned {len(groups)} DON(s) for '{mode}' topology")
    return PlannedTopology(
        mode=mode,
        groups=groups,
        binary_paths=gate.binary_paths,
        shared_image=plugins_image,
    )
