"""
crenv Capabilities - Capability registry.

Maps every capability name to the factories that register it on-chain and
produce its job specs. Chain-scoped capabilities get one binding per chain.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from loguru import logger

from crenv.capabilities import factories
from crenv.capabilities.binaries import container_binary_path
from crenv.config.models import BlockchainInput
from crenv.core.exceptions import InvalidConfigError, MissingCapabilityBinaryError
from crenv.core.types import Capability, InfraType
from crenv.jobs.models import CapabilityRegistration, ContractFactory, JobSpecFactory
from crenv.topology.models import NodeGroupDescriptor, PlannedTopology

# Capabilities bound once per chain
CHAIN_SCOPED_CAPABILITIES = frozenset({
    Capability.WRITE_EVM,
    Capability.READ_CONTRACT,
    Capability.LOG_EVENT_TRIGGER,
})

# Capabilities shipped as separate binaries
BINARY_CAPABILITIES = frozenset({
    Capability.CRON,
    Capability.READ_CONTRACT,
    Capability.LOG_EVENT_TRIGGER,
})

CHAIN_FAMILY = "evm"


@dataclass(frozen=True)
class CapabilityBinding:
    """One capability, optionally bound to a chain."""

    name: str
    contract_factory: ContractFactory | None = None
    job_spec_factory: JobSpecFactory | None = None
    binary_path: str = ""
    chain_id: int | None = None
    requires_binary: bool = False

    @property
    def key(self) -> tuple[str, int | None]:
        return (self.name, self.chain_id)


class CapabilityRegistry:
    """
    Ordered, immutable set of capability bindings.

    Registration order is the order factories run in.
    """

    def __init__(self, bindings: Iterable[CapabilityBinding], plugins_image: str = "") -> None:
        self._bindings: tuple[CapabilityBinding, ...] = tuple(bindings)
        self.plugins_image = plugins_image

        seen: set[tuple[str, int | None]] = set()
        for binding in self._bindings:
            if binding.key in seen:
                suffix = f" for chain {binding.chain_id}" if binding.chain_id is not None else ""
                raise InvalidConfigError(
                    f"capability '{binding.name}' registered twice{suffix}",
                    {"capability": binding.name, "chain_id": binding.chain_id},
                )
            seen.add(binding.key)

    @property
    def bindings(self) -> tuple[CapabilityBinding, ...]:
        return self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def get(self, name: str, chain_id: int | None = None) -> CapabilityBinding | None:
        """Binding for a capability, or None."""
        for binding in self._bindings:
            if binding.key == (name, chain_id):
                return binding
        return None

    def named(self, name: str) -> list[CapabilityBinding]:
        """All bindings for a capability name, across chains."""
        return [binding for binding in self._bindings if binding.name == name]

    def chain_ids(self) -> list[int]:
        """Chain IDs with at least one chain-scoped binding, in registration order."""
        ids: list[int] = []
        for binding in self._bindings:
            if binding.chain_id is not None and binding.chain_id not in ids:
                ids.append(binding.chain_id)
        return ids

    def validate(self, topology: PlannedTopology) -> None:
        """
        Check that every capability of every group can be provisioned.

        Chain-scoped capabilities may have no binding at all, e.g. a write
        capability when every chain is read-only.

        Raises:
            InvalidConfigError: A capability has no binding.
            MissingCapabilityBinaryError: A binary capability has no host
                path and no plugins image is used.
        """
        for group in topology.groups:
            for capability in group.capabilities:
                bindings = self.named(capability)
                if not bindings and capability not in CHAIN_SCOPED_CAPABILITIES:
                    raise InvalidConfigError(
                        f"no binding registered for capability '{capability}'",
                        {"capability": capability, "group": group.name},
                    )
                for binding in bindings:
                    if binding.requires_binary and not binding.binary_path and not self.plugins_image:
                        raise MissingCapabilityBinaryError(capability, group.name)

    def contract_registrations(self, group: NodeGroupDescriptor) -> list[CapabilityRegistration]:
        """Run every contract factory against one group."""
        registrations: list[CapabilityRegistration] = []
        for binding in self._bindings:
            if binding.contract_factory is not None:
                registrations.extend(binding.contract_factory(group))
        return registrations

    def custom_binaries_paths(self) -> list[str]:
        """Host paths to copy into node containers (none with a plugins image)."""
        if self.plugins_image:
            return []
        paths: list[str] = []
        for binding in self._bindings:
            if binding.binary_path and binding.binary_path not in paths:
                paths.append(binding.binary_path)
        return paths


def build_registry(
    topology: PlannedTopology,
    blockchains: Sequence[BlockchainInput],
    infra_type: InfraType,
    extra_binaries: Mapping[str, str] | None = None,
) -> CapabilityRegistry:
    """
    Build the default registry for a planned topology.

    Args:
        topology: Planned topology (carries binary paths and the shared image).
        blockchains: Configured chains, home chain first.
        infra_type: Target infrastructure, selects the container directory.
        extra_binaries: Additional capability name -> host path.

    Returns:
        CapabilityRegistry with built-ins, then per-chain bindings, then extras.
    """
    plugins_image = topology.shared_image
    paths = topology.binary_paths
    home_chain_id = blockchains[0].chain_id

    def in_container(capability: str) -> str:
        host_path = paths.get(capability, "")
        if not host_path and not plugins_image:
            # Unused capability, validate() rejects it if a group asks for it
            return ""
        return container_binary_path(capability, host_path, plugins_image, infra_type)

    bindings: list[CapabilityBinding] = [
        CapabilityBinding(
            Capability.WEB_API_TRIGGER,
            factories.web_api_trigger_contract_factory,
            factories.web_api_trigger_job_spec_factory,
        ),
        CapabilityBinding(
            Capability.WEB_API_TARGET,
            factories.web_api_target_contract_factory,
            factories.web_api_target_job_spec_factory,
        ),
        CapabilityBinding(
            Capability.CONSENSUS,
            factories.consensus_contract_factory,
            factories.consensus_job_spec_factory(home_chain_id),
        ),
        CapabilityBinding(
            Capability.CRON,
            factories.cron_contract_factory,
            factories.cron_job_spec_factory(in_container(Capability.CRON)),
            binary_path=paths.get(Capability.CRON, ""),
            requires_binary=True,
        ),
        CapabilityBinding(
            Capability.COMPUTE,
            factories.compute_contract_factory,
            factories.compute_job_spec_factory,
        ),
    ]

    for chain in blockchains:
        if chain.read_only:
            logger.debug(f"Chain {chain.chain_id} is read-only, no write capability")
        else:
            bindings.append(CapabilityBinding(
                Capability.WRITE_EVM,
                factories.write_evm_contract_factory(chain.chain_id),
                chain_id=chain.chain_id,
            ))
        bindings.append(CapabilityBinding(
            Capability.READ_CONTRACT,
            factories.read_contract_contract_factory(chain.chain_id, CHAIN_FAMILY),
            factories.read_contract_job_spec_factory(
                chain.chain_id, CHAIN_FAMILY, in_container(Capability.READ_CONTRACT)
            ),
            binary_path=paths.get(Capability.READ_CONTRACT, ""),
            chain_id=chain.chain_id,
            requires_binary=True,
        ))
        bindings.append(CapabilityBinding(
            Capability.LOG_EVENT_TRIGGER,
            factories.log_event_trigger_contract_factory(chain.chain_id, CHAIN_FAMILY),
            factories.log_event_trigger_job_spec_factory(
                chain.chain_id, CHAIN_FAMILY, in_container(Capability.LOG_EVENT_TRIGGER)
            ),
            binary_path=paths.get(Capability.LOG_EVENT_TRIGGER, ""),
            chain_id=chain.chain_id,
            requires_binary=True,
        ))

    for name, host_path in (extra_binaries or {}).items():
        bindings.append(CapabilityBinding(name, binary_path=host_path, requires_binary=True))

    registry = CapabilityRegistry(bindings, plugins_image=plugins_image)
    logger.debug(f"Registered {len(registry)} capability binding(s)")
    return registry
