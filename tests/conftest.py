"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from crenv.config.models import (
    BlockchainInput,
    EnvironmentConfig,
    ExtraCapabilitiesConfig,
    JobDistributorInput,
    NodeSetInput,
    NodeSpec,
    ProvisioningRequest,
)
from crenv.core.types import TopologyMode
from crenv.provisioning.models import GatewayEndpoint, NodeEndpoint
from crenv.providers.base import ProviderSet

# Use pytest-asyncio's built-in event loop management
pytest_plugins = ("pytest_asyncio",)


@pytest.fixture(scope="session")
def event_loop_policy() -> asyncio.AbstractEventLoopPolicy:
    """Return the event loop policy to use for tests."""
    return asyncio.DefaultEventLoopPolicy()


# =============================================================================
# Fake collaborators
# =============================================================================

@dataclass
class FakeBlockchainHandle:
    chain_id: int
    rpc_http_url: str
    rpc_ws_url: str = ""
    deployer_address: str = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
    chain_selector: int | None = None
    contract_addresses: dict[str, str] = field(default_factory=lambda: {"ocr3_capability": "0x0ocr3"})
    ready_after: int = 0
    polls: int = 0

    async def is_ready(self) -> bool:
        self.polls += 1
        return self.polls > self.ready_after


class FakeBlockchainProvider:
    def __init__(self, ready_after: int = 0, selectors: dict[int, int] | None = None) -> None:
        self.started: list[int] = []
        self.ready_after = ready_after
        self.selectors = selectors or {}

    async def start(self, spec: BlockchainInput, deployer_private_key: str) -> FakeBlockchainHandle:
        self.started.append(spec.chain_id)
        port = spec.port or 8545
        return FakeBlockchainHandle(
            chain_id=spec.chain_id,
            rpc_http_url=f"http://localhost:{port}",
            rpc_ws_url=f"ws://localhost:{port}",
            chain_selector=self.selectors.get(spec.chain_id),
            ready_after=self.ready_after,
        )


@dataclass
class FakeControlPlaneHandle:
    external_grpc_url: str = "localhost:14231"
    internal_grpc_url: str = "jd:14231"
    internal_wsrpc_url: str = "jd:8080"
    fail_on_node: str | None = None
    proposals: list[tuple[str, str]] = field(default_factory=list)

    async def propose_job(self, node: str, spec: str) -> str:
        if node == self.fail_on_node:
            raise RuntimeError(f"node {node} rejected the proposal")
        self.proposals.append((node, spec))
        return f"proposal-{len(self.proposals)}"


class FakeControlPlaneProvider:
    def __init__(self, error: BaseException | None = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.started: list[JobDistributorInput] = []
        self.cancelled = False
        self.handle = FakeControlPlaneHandle()

    async def start(self, spec: JobDistributorInput) -> FakeControlPlaneHandle:
        self.started.append(spec)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return self.handle


@dataclass
class FakeNodeGroupHandle:
    name: str
    nodes: list[NodeEndpoint]
    gateway: GatewayEndpoint | None = None


class FakeNodeGroupProvider:
    def __init__(
        self,
        fail_on: str | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self.fail_on = fail_on
        self.error = error or RuntimeError("container exited with code 1")
        self.delay = delay
        self.started: list[str] = []
        self.binaries: list[list[str]] = []
        self.cancelled = False

    async def start(self, group, custom_binaries, blockchains) -> FakeNodeGroupHandle:
        self.started.append(group.name)
        self.binaries.append(list(custom_binaries))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if group.name == self.fail_on:
            raise self.error

        nodes = [
            NodeEndpoint(
                name=f"{group.name}-node{i}",
                index=i,
                external_url=f"http://localhost:{group.node_set.http_port_range_start + i}",
                internal_host=f"{group.name}-node{i}",
                p2p_peer_id=f"12D3KooW{group.name}{i}",
                account_address=f"0x{i + 1:040x}",
            )
            for i in range(group.node_set.node_count)
        ]
        gateway = None
        if group.gateway_index is not None:
            gateway = GatewayEndpoint(protocol="http", host="localhost", external_port=5002)
        return FakeNodeGroupHandle(name=group.name, nodes=nodes, gateway=gateway)


class FakeContainerEngine:
    def __init__(self, containers: list[str] | None = None, fail_remove: set[str] | None = None) -> None:
        self.containers = list(containers or [])
        self.fail_remove = set(fail_remove or ())
        self.list_calls = 0
        self.removed: list[str] = []

    async def list_containers(self, label: str) -> list[str]:
        self.list_calls += 1
        return list(self.containers)

    async def remove_container(self, container_id: str, remove_volumes: bool = True) -> None:
        if container_id in self.fail_remove:
            raise RuntimeError(f"cannot remove {container_id}")
        self.removed.append(container_id)
        self.containers.remove(container_id)


class RecordingTracker:
    """Tracker keeping every event in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[tuple[str, dict[str, Any]]] = []

    def track(self, event: str, properties: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("telemetry endpoint unreachable")
        self.events.append((event, dict(properties)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def get(self, event: str) -> dict[str, Any]:
        for name, properties in self.events:
            if name == event:
                return properties
        raise KeyError(event)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def providers() -> ProviderSet:
    """ProviderSet made of in-memory fakes."""
    return ProviderSet(
        containers=FakeContainerEngine(),
        blockchains=FakeBlockchainProvider(),
        control_plane=FakeControlPlaneProvider(),
        node_groups=FakeNodeGroupProvider(),
    )


@pytest.fixture
def tracker() -> RecordingTracker:
    return RecordingTracker()


def build_node_sets(topology: TopologyMode, nodes: int = 4, count: int | None = None) -> list[NodeSetInput]:
    names = ["workflow"] if topology == TopologyMode.SIMPLIFIED else ["workflow", "capabilities", "gateway"]
    if count is not None:
        names = [f"set-{i}" for i in range(count)]
    return [
        NodeSetInput(
            name=name,
            nodes=1 if name == "gateway" else nodes,
            http_port_range_start=10100 + 100 * i,
            node_specs=[NodeSpec(image="chainlink:local")],
        )
        for i, name in enumerate(names)
    ]


def build_request(
    topology: TopologyMode = TopologyMode.SIMPLIFIED,
    chains: tuple[tuple[int, bool], ...] = ((1337, False),),
    node_set_count: int | None = None,
    extra_capabilities: ExtraCapabilitiesConfig | None = None,
    jd: JobDistributorInput | None = None,
    node_sets: list[NodeSetInput] | None = None,
    **options: Any,
) -> ProvisioningRequest:
    config = EnvironmentConfig(
        blockchains=[
            BlockchainInput(chain_id=chain_id, read_only=read_only, port=8545 + i)
            for i, (chain_id, read_only) in enumerate(chains)
        ],
        nodesets=node_sets or build_node_sets(topology, count=node_set_count),
        jd=jd or JobDistributorInput(),
        extra_capabilities=extra_capabilities or ExtraCapabilitiesConfig(),
    )
    return ProvisioningRequest(config=config, topology=topology, **options)


@pytest.fixture
def make_request():
    """Factory fixture building ProvisioningRequests."""
    return build_request
