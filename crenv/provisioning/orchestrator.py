"""
crenv Provisioning - Orchestrator.

Single entry point turning a ProvisioningRequest into a running
environment: plan, validate, start chains, start the control plane and the
node groups, then register capabilities and propose jobs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from crenv.capabilities.registry import CapabilityRegistry, build_registry
from crenv.config.models import ProvisioningRequest
from crenv.core.context import ProvisioningContext
from crenv.core.exceptions import (
    InvalidConfigError,
    JobProposalError,
    MissingCredentialError,
    ProvisioningTimeoutError,
)
from crenv.core.observability import NoOpTracker
from crenv.core.types import WorkflowTrigger
from crenv.jobs.assembler import JobSpecAssembler
from crenv.jobs.models import CapabilityRegistration, JobSpecContext, JobSpecFactory
from crenv.provisioning.chains import start_blockchains
from crenv.provisioning.coordinator import ProvisioningCoordinator
from crenv.provisioning.keys import ensure_csa_key
from crenv.provisioning.models import (
    DonTopology,
    JobDistributorOutput,
    NodeGroupOutput,
    ProvisionedJob,
    ProvisioningResult,
)
from crenv.providers.base import NodeGroupHandle, ProviderSet
from crenv.topology.models import PlannedTopology
from crenv.topology.planner import plan_topology


def check_example_preconditions(request: ProvisioningRequest) -> None:
    """
    The example workflow with a cron trigger needs the cron capability.

    Raises:
        InvalidConfigError: No cron binary and no plugins image.
    """
    if not request.with_example or request.example_workflow_trigger != WorkflowTrigger.CRON:
        return
    if request.config.extra_capabilities.cron_capability_binary_path or request.plugins_image:
        return
    raise InvalidConfigError(
        "cron binary path must be set when the example workflow uses a cron trigger "
        "and no plugins image is given",
        {"trigger": str(request.example_workflow_trigger)},
    )


def check_credentials(request: ProvisioningRequest) -> None:
    """Chains are funded from the deployer key, so it must be present."""
    if not request.deployer_private_key.strip():
        raise MissingCredentialError("deployer private key")


def plan_request(request: ProvisioningRequest) -> tuple[PlannedTopology, CapabilityRegistry]:
    """Plan the topology and build the validated capability registry."""
    topology = plan_topology(
        request.topology,
        request.config.node_sets,
        request.config.extra_capabilities,
        request.extra_binaries,
        request.plugins_image,
    )
    registry = build_registry(
        topology,
        request.config.blockchains,
        request.infra_type,
        request.extra_binaries,
    )
    registry.validate(topology)
    return topology, registry


def _node_group_outputs(
    topology: PlannedTopology,
    handles: Sequence[NodeGroupHandle],
) -> list[NodeGroupOutput]:
    return [
        NodeGroupOutput(
            name=group.name,
            nodes=tuple(handle.nodes),
            capabilities=group.capabilities,
            don_types=group.don_types,
        )
        for group, handle in zip(topology.groups, handles, strict=True)
    ]


async def _bring_up(
    request: ProvisioningRequest,
    providers: ProviderSet,
    ctx: ProvisioningContext,
    topology: PlannedTopology,
    registry: CapabilityRegistry,
    extra_job_spec_factories: Sequence[JobSpecFactory],
) -> ProvisioningResult:
    blockchains = await start_blockchains(
        providers.blockchains,
        request.config.blockchains,
        request.deployer_private_key,
        ctx,
    )

    coordinator = ProvisioningCoordinator(providers, ctx)
    jd_handle, group_handles = await coordinator.run(
        request.config.jd,
        topology,
        registry.custom_binaries_paths(),
        blockchains,
    )

    outputs = _node_group_outputs(topology, group_handles)
    # DON IDs follow topology order, starting at 1
    don_ids = {group.name: index + 1 for index, group in enumerate(topology.groups)}
    gateway = next((handle.gateway for handle in group_handles if handle.gateway), None)

    job_distributor = JobDistributorOutput(
        external_grpc_url=jd_handle.external_grpc_url,
        internal_grpc_url=jd_handle.internal_grpc_url,
        internal_wsrpc_url=jd_handle.internal_wsrpc_url,
        csa_encryption_key=request.config.jd.csa_encryption_key,
    )

    registrations: list[CapabilityRegistration] = []
    for group in topology.groups:
        registrations.extend(registry.contract_registrations(group))
    logger.info(f"📝 {len(registrations)} capability registration(s) prepared")

    job_ctx = JobSpecContext(
        topology=topology,
        node_groups={output.name: output for output in outputs},
        blockchains=blockchains,
        job_distributor=job_distributor,
        don_ids=don_ids,
    )
    assembler = JobSpecAssembler(
        registry,
        request.extra_allowed_gateway_ports,
        extra_job_spec_factories,
    )

    jobs: list[ProvisionedJob] = []
    for spec in assembler.run(job_ctx):
        ctx.token.raise_if_cancelled()
        try:
            await jd_handle.propose_job(spec.node, spec.toml)
        except Exception as e:
            raise JobProposalError(
                f"failed to propose {spec.kind} job to node {spec.node}: {e}",
                {"group": spec.group, "node": spec.node},
            ) from e
        jobs.append(ProvisionedJob(group=spec.group, node=spec.node, kind=spec.kind, spec=spec.toml))
    logger.info(f"📨 Proposed {len(jobs)} job(s)")

    return ProvisioningResult(
        blockchains=blockchains,
        topology=DonTopology(
            workflow_don_id=don_ids[topology.workflow_group.name],
            don_ids=don_ids,
            node_groups=tuple(outputs),
            gateway=gateway,
        ),
        job_distributor=job_distributor,
        infra_type=request.infra_type,
        jobs=jobs,
        capability_registrations=registrations,
    )


async def provision(
    request: ProvisioningRequest,
    providers: ProviderSet,
    ctx: ProvisioningContext | None = None,
    extra_job_spec_factories: Sequence[JobSpecFactory] = (),
) -> ProvisioningResult:
    """
    Provision a complete environment.

    Configuration problems are detected before any provider is called.

    Args:
        request: Validated provisioning request.
        providers: External collaborators.
        ctx: Per-attempt context. A silent one is created when omitted.
        extra_job_spec_factories: Caller factories, run after the built-ins.

    Returns:
        ProvisioningResult owned by the caller.

    Raises:
        ConfigurationError: Invalid request, nothing was started.
        ProvisioningTimeoutError: Startup exceeded ``request.startup_timeout``.
        ProvisioningError: A component failed to start.
    """
    ctx = ctx or ProvisioningContext(tracker=NoOpTracker())

    check_credentials(request)
    check_example_preconditions(request)
    topology, registry = plan_request(request)
    if request.with_example:
        logger.info(
            f"Example workflow ({request.example_workflow_trigger}) is deployed by the workflow tooling"
        )

    request, generated_key = ensure_csa_key(request)

    try:
        result = await asyncio.wait_for(
            _bring_up(request, providers, ctx, topology, registry, extra_job_spec_factories),
            timeout=request.startup_timeout,
        )
    except asyncio.TimeoutError:
        raise ProvisioningTimeoutError(request.startup_timeout) from None

    result.generated_csa_key = generated_key
    return result
