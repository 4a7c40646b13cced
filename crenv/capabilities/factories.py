"""
crenv Capabilities - Built-in contract and job spec factories.

Contract factories turn a node group into the capability registrations it
needs on the home chain. Job spec factories turn the running node groups
into TOML job specs. Chain-scoped factories are created per chain ID.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Sequence

import toml

from crenv.core.types import Capability, DonRole
from crenv.jobs.models import (
    CapabilityRegistration,
    ContractFactory,
    JobSpec,
    JobSpecContext,
    JobSpecFactory,
)
from crenv.provisioning.models import NodeEndpoint, NodeGroupOutput
from crenv.topology.models import NodeGroupDescriptor

OCR3_CAPABILITY_CONTRACT = "ocr3_capability"
BOOTSTRAP_PEERS_ARTIFACT = "bootstrap_peers"
OCR_P2P_PORT = 5001
GATEWAY_USER_PORT = 5002
GATEWAY_NODE_PORT = 5003
DEFAULT_ALLOWED_PORTS = (80, 443)


def _external_job_id() -> str:
    return str(uuid.uuid4())


def _worker_nodes(group: NodeGroupDescriptor, output: NodeGroupOutput) -> list[NodeEndpoint]:
    """Nodes that run capabilities: everything but the bootstrap node."""
    return [node for node in output.nodes if node.index != group.bootstrap_index]


def _job(group: NodeGroupDescriptor, node: NodeEndpoint, kind: str, body: dict) -> JobSpec:
    return JobSpec(group=group.name, node=node.name, kind=kind, toml=toml.dumps(body))


# =============================================================================
# Contract factories
# =============================================================================

def _registration_factory(
    capability: str,
    labelled_name: str,
    capability_type: str,
    config: dict | None = None,
    version: str = "1.0.0",
) -> ContractFactory:
    def factory(group: NodeGroupDescriptor) -> list[CapabilityRegistration]:
        if not group.has_capability(capability):
            return []
        return [
            CapabilityRegistration(
                group=group.name,
                labelled_name=labelled_name,
                version=version,
                capability_type=capability_type,
                config=dict(config or {}),
            )
        ]

    factory.__name__ = f"{labelled_name.replace('-', '_')}_contract_factory"
    return factory


web_api_trigger_contract_factory = _registration_factory(
    Capability.WEB_API_TRIGGER, "web-api-trigger", "trigger"
)
web_api_target_contract_factory = _registration_factory(
    Capability.WEB_API_TARGET, "web-api-target", "target"
)
compute_contract_factory = _registration_factory(Capability.COMPUTE, "custom-compute", "action")
consensus_contract_factory = _registration_factory(
    Capability.CONSENSUS, "offchain_reporting", "consensus"
)
cron_contract_factory = _registration_factory(Capability.CRON, "cron-trigger", "trigger")


def write_evm_contract_factory(chain_id: int) -> ContractFactory:
    """Write target registration for one chain."""
    return _registration_factory(
        Capability.WRITE_EVM, f"write_evm_{chain_id}", "target", {"chain_id": chain_id}
    )


def read_contract_contract_factory(chain_id: int, family: str = "evm") -> ContractFactory:
    """Read action registration for one chain."""
    return _registration_factory(
        Capability.READ_CONTRACT,
        f"read-contract-{family}-{chain_id}",
        "action",
        {"chain_id": chain_id, "family": family},
    )


def log_event_trigger_contract_factory(chain_id: int, family: str = "evm") -> ContractFactory:
    """Log event trigger registration for one chain."""
    return _registration_factory(
        Capability.LOG_EVENT_TRIGGER,
        f"log-event-trigger-{family}-{chain_id}",
        "trigger",
        {"chain_id": chain_id, "family": family},
    )


# =============================================================================
# Job spec factories
# =============================================================================

def _standard_capability_factory(
    capability: str,
    job_name: str,
    command: str,
    config: dict | None = None,
) -> JobSpecFactory:
    def factory(ctx: JobSpecContext) -> list[JobSpec]:
        specs: list[JobSpec] = []
        for group, output in ctx.groups_with(capability):
            for node in _worker_nodes(group, output):
                specs.append(_job(group, node, capability, {
                    "type": "standardcapabilities",
                    "schemaVersion": 1,
                    "externalJobID": _external_job_id(),
                    "name": job_name,
                    "forwardingAllowed": False,
                    "command": command,
                    "config": json.dumps(config) if config else "",
                }))
        return specs

    factory.__name__ = f"{job_name.replace('-', '_')}_job_spec_factory"
    return factory


web_api_trigger_job_spec_factory = _standard_capability_factory(
    Capability.WEB_API_TRIGGER,
    "web-api-trigger-capability",
    "__builtin_web-api-trigger",
    {
        "allowedSenders": [],
        "allowedTopics": [],
        "rateLimiter": {
            "globalRPS": 100.0,
            "globalBurst": 100,
            "perSenderRPS": 100.0,
            "perSenderBurst": 100,
        },
    },
)

web_api_target_job_spec_factory = _standard_capability_factory(
    Capability.WEB_API_TARGET,
    "web-api-target-capability",
    "__builtin_web-api-target",
    {"rateLimiter": {"globalRPS": 1000.0, "globalBurst": 1000, "perSenderRPS": 100.0, "perSenderBurst": 100}},
)

compute_job_spec_factory = _standard_capability_factory(
    Capability.COMPUTE,
    "custom-compute-capability",
    "__builtin_custom-compute-action",
    {
        "rateLimiter": {"globalRPS": 20.0, "globalBurst": 30, "perSenderRPS": 1.0, "perSenderBurst": 5},
        "maxMemoryMBs": 128,
    },
)


def cron_job_spec_factory(binary_path: str) -> JobSpecFactory:
    """Cron trigger jobs running the binary at ``binary_path`` in the container."""
    return _standard_capability_factory(Capability.CRON, "cron-capabilities", binary_path)


def log_event_trigger_job_spec_factory(
    chain_id: int,
    family: str,
    binary_path: str,
) -> JobSpecFactory:
    """Log event trigger jobs for one chain."""
    return _standard_capability_factory(
        Capability.LOG_EVENT_TRIGGER,
        f"log-event-trigger-{chain_id}",
        binary_path,
        {"chainId": str(chain_id), "network": family, "lookbackBlocks": 1000, "pollPeriod": 1000},
    )


def read_contract_job_spec_factory(
    chain_id: int,
    family: str,
    binary_path: str,
) -> JobSpecFactory:
    """Contract read jobs for one chain."""
    return _standard_capability_factory(
        Capability.READ_CONTRACT,
        f"read-contract-{chain_id}",
        binary_path,
        {"chainId": chain_id, "network": family},
    )


def consensus_job_spec_factory(chain_id: int) -> JobSpecFactory:
    """
    OCR3 consensus jobs on the given chain.

    The bootstrap node of each group gets a bootstrap job; its peer address
    is published in ``artifacts["bootstrap_peers"]`` and used by the oracle
    jobs of the other nodes.
    """

    def consensus_job_spec_factory(ctx: JobSpecContext) -> list[JobSpec]:
        contract = ctx.home_chain.contract_addresses.get(OCR3_CAPABILITY_CONTRACT, "")
        peers: dict[str, str] = ctx.artifacts.setdefault(BOOTSTRAP_PEERS_ARTIFACT, {})
        specs: list[JobSpec] = []

        for group, output in ctx.groups_with(Capability.CONSENSUS):
            if not group.has_bootstrap:
                continue
            bootstrap = output.nodes[group.bootstrap_index]
            peers[group.name] = f"{bootstrap.p2p_peer_id}@{bootstrap.internal_host}:{OCR_P2P_PORT}"
            specs.append(_job(group, bootstrap, "bootstrap", {
                "type": "bootstrap",
                "schemaVersion": 1,
                "externalJobID": _external_job_id(),
                "name": "Bootstrap",
                "contractID": contract,
                "contractConfigTrackerPollInterval": "1s",
                "contractConfigConfirmations": 1,
                "relay": "evm",
                "relayConfig": {"chainID": chain_id, "providerType": "ocr3-capability"},
            }))

            for node in _worker_nodes(group, output):
                specs.append(_job(group, node, Capability.CONSENSUS, {
                    "type": "offchainreporting2",
                    "schemaVersion": 1,
                    "externalJobID": _external_job_id(),
                    "name": "Keystone OCR3 Consensus Plugin",
                    "contractID": contract,
                    "p2pv2Bootstrappers": [peers[group.name]],
                    "relay": "evm",
                    "pluginType": "plugin",
                    "transmitterID": node.account_address,
                    "relayConfig": {"chainID": str(chain_id)},
                    "pluginConfig": {
                        "command": "/usr/local/bin/chainlink-ocr3-capability",
                        "ocrVersion": 3,
                        "pluginName": "ocr-capability",
                        "providerType": "ocr3-capability",
                        "telemetryType": "plugin",
                    },
                }))
        return specs

    return consensus_job_spec_factory


def gateway_job_spec_factory(
    extra_allowed_ports: Sequence[int],
    blocked_ips: Sequence[str],
    allowed_ips_cidr: Sequence[str],
) -> JobSpecFactory:
    """
    Gateway job on the gateway node of every gateway group.

    Every DON running web API capabilities is exposed through the gateway.
    """

    def gateway_job_spec_factory(ctx: JobSpecContext) -> list[JobSpec]:
        dons = []
        for group in ctx.topology.groups:
            if not (
                group.has_capability(Capability.WEB_API_TRIGGER)
                or group.has_capability(Capability.WEB_API_TARGET)
            ):
                continue
            output = ctx.node_groups[group.name]
            members = _worker_nodes(group, output)
            dons.append({
                "DonId": str(ctx.don_ids[group.name]),
                "F": max((len(members) - 1) // 3, 0),
                "HandlerName": "web-api-capabilities",
                "Members": [
                    {"Address": node.account_address, "Name": node.name} for node in members
                ],
            })

        allowed_ports = sorted(set(DEFAULT_ALLOWED_PORTS) | set(extra_allowed_ports))
        specs: list[JobSpec] = []
        for group in ctx.topology.groups:
            if not group.has_role(DonRole.GATEWAY) or group.gateway_index is None:
                continue
            node = ctx.node_groups[group.name].nodes[group.gateway_index]
            specs.append(_job(group, node, "gateway", {
                "type": "gateway",
                "schemaVersion": 1,
                "externalJobID": _external_job_id(),
                "name": "gateway",
                "forwardingAllowed": False,
                "gatewayConfig": {
                    "ConnectionManagerConfig": {
                        "AuthChallengeLen": 10,
                        "AuthGatewayId": "por_gateway",
                        "AuthTimestampToleranceSec": 5,
                        "HeartbeatIntervalSec": 20,
                    },
                    "Dons": dons,
                    "NodeServerConfig": {"Path": "/node", "Port": GATEWAY_NODE_PORT},
                    "UserServerConfig": {"Path": "/", "Port": GATEWAY_USER_PORT},
                    "HTTPClientConfig": {
                        "MaxResponseBytes": 100_000_000,
                        "AllowedPorts": allowed_ports,
                        "AllowedSchemes": ["http", "https"],
                        "AllowedIPsCIDR": list(allowed_ips_cidr),
                        "BlockedIPs": list(blocked_ips),
                    },
                },
            }))
        return specs

    return gateway_job_spec_factory
