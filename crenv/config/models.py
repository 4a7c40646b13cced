"""
crenv Config - Configuration models.

Pydantic models for the declarative environment request. All models are
frozen: once validation passes the request does not change. Derived
copies are made with ``model_copy(update=...)``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from crenv.core.types import InfraType, TopologyMode, WorkflowTrigger

# Well-known local development key (anvil/geth dev account 0)
DEFAULT_DEPLOYER_PRIVATE_KEY = "ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

DEFAULT_STARTUP_TIMEOUT_SECONDS = 600.0


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class BlockchainInput(_Frozen):
    """One chain to start."""

    type: Literal["anvil", "geth"] = Field(default="anvil", description="Chain node implementation")
    chain_id: int = Field(gt=0, description="EVM chain ID")
    port: int | None = Field(default=None, ge=1, le=65535, description="Host RPC port")
    image: str | None = Field(default=None, description="Chain node image override")
    read_only: bool = Field(default=False, description="No write capability for this chain")

    @field_validator("chain_id", mode="before")
    @classmethod
    def _parse_chain_id(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError as e:
                raise ValueError(f"failed to convert chain ID to int: {value!r}") from e
        return value


class NodeSpec(_Frozen):
    """Container settings for a single node."""

    image: str = Field(default="", description="Prebuilt node image")
    docker_context: str = Field(default="", description="Build context when building locally")
    docker_file_path: str = Field(default="", description="Dockerfile when building locally")
    user_config_overrides: str = Field(default="", description="Extra node TOML config")
    user_secrets_overrides: str = Field(default="", description="Extra node TOML secrets")

    @property
    def builds_image(self) -> bool:
        """Whether this node builds its image locally."""
        return bool(self.docker_file_path)


class NodeSetInput(_Frozen):
    """A named set of nodes forming one DON."""

    name: str = Field(min_length=1, description="Node set name")
    nodes: int = Field(default=1, ge=1, description="Number of nodes")
    override_mode: Literal["all", "each"] = Field(default="all", description="How node specs apply")
    http_port_range_start: int = Field(default=10100, ge=1, le=65535)
    node_specs: list[NodeSpec] = Field(default_factory=list)

    @property
    def node_count(self) -> int:
        """Number of nodes in the set."""
        if self.override_mode == "each" and self.node_specs:
            return len(self.node_specs)
        return self.nodes


class JobDistributorInput(_Frozen):
    """Control-plane (job distributor) settings."""

    image: str = Field(default="job-distributor:0.12.7", description="Job distributor image")
    csa_encryption_key: str = Field(default="", description="Hex CSA encryption key, generated if empty")
    grpc_port: int = Field(default=14231, ge=1, le=65535)
    wsrpc_port: int = Field(default=8080, ge=1, le=65535)


class CribInput(_Frozen):
    """Remote cluster settings."""

    namespace: str = Field(default="", description="Cluster namespace")
    folder_location: str = Field(default="", description="Local checkout of the deployment scripts")


class InfraInput(_Frozen):
    """Infrastructure target."""

    type: InfraType = Field(default=InfraType.DOCKER)
    crib: CribInput | None = None

    @model_validator(mode="after")
    def _require_namespace(self) -> InfraInput:
        if self.type == InfraType.CRIB and (self.crib is None or not self.crib.namespace):
            raise ValueError("infra.crib.namespace must be provided when infra type is 'crib'")
        return self


class ExtraCapabilitiesConfig(_Frozen):
    """Host paths of optional capability binaries."""

    cron_capability_binary_path: str = ""
    log_event_trigger_binary_path: str = ""
    read_contract_capability_binary_path: str = ""


class EnvironmentConfig(_Frozen):
    """Root of the TOML configuration."""

    blockchains: list[BlockchainInput] = Field(min_length=1)
    node_sets: list[NodeSetInput] = Field(alias="nodesets", min_length=1)
    jd: JobDistributorInput = Field(default_factory=JobDistributorInput)
    infra: InfraInput = Field(default_factory=InfraInput)
    extra_capabilities: ExtraCapabilitiesConfig = Field(default_factory=ExtraCapabilitiesConfig)


class ProvisioningRequest(_Frozen):
    """Everything provisioning needs: the environment config plus run options."""

    config: EnvironmentConfig
    topology: TopologyMode = TopologyMode.SIMPLIFIED
    plugins_image: str = Field(default="", description="Image with all capabilities included")
    extra_allowed_gateway_ports: list[int] = Field(default_factory=list)
    extra_binaries: dict[str, str] = Field(default_factory=dict)
    with_example: bool = False
    example_workflow_trigger: WorkflowTrigger = WorkflowTrigger.WEB_TRIGGER
    deployer_private_key: str = DEFAULT_DEPLOYER_PRIVATE_KEY
    startup_timeout: float = Field(default=DEFAULT_STARTUP_TIMEOUT_SECONDS, gt=0)

    @field_validator("extra_allowed_gateway_ports")
    @classmethod
    def _check_ports(cls, ports: list[int]) -> list[int]:
        for port in ports:
            if not 1 <= port <= 65535:
                raise ValueError(f"invalid gateway port: {port}")
        return ports

    @property
    def infra_type(self) -> InfraType:
        return self.config.infra.type

    @property
    def home_chain(self) -> BlockchainInput:
        """The registry chain, always the first one."""
        return self.config.blockchains[0]

    @property
    def has_built_image(self) -> bool:
        """Whether any node builds its image locally (never with a shared image)."""
        if self.plugins_image:
            return False
        return any(
            spec.builds_image
            for node_set in self.config.node_sets
            for spec in node_set.node_specs
        )
