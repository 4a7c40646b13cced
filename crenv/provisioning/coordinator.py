"""
crenv Provisioning - Concurrent bring-up of the control plane and node groups.

Two tasks run side by side: the job distributor, and all node groups one
after another. The first failure cancels the other task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from crenv.config.models import JobDistributorInput
from crenv.core.context import ProvisioningContext
from crenv.core.exceptions import (
    ControlPlaneStartError,
    NodeGroupStartError,
    ProvisioningError,
    ProvisioningInterrupted,
)
from crenv.provisioning.models import BlockchainOutput
from crenv.providers.base import ControlPlaneHandle, NodeGroupHandle, ProviderSet
from crenv.topology.models import PlannedTopology

PULL_ACCESS_DENIED_MARKERS = ("pull access denied", "may require 'docker login'")
PULL_ACCESS_HINT = (
    "ensure that you either have built the local image or you are logged into AWS "
    "with a profile that can read it (`aws sso login --profile <foo>`)"
)


def _is_pull_access_error(message: str) -> bool:
    return any(marker in message for marker in PULL_ACCESS_DENIED_MARKERS)


class ProvisioningCoordinator:
    """Fork/join of the control plane and the node groups."""

    def __init__(self, providers: ProviderSet, ctx: ProvisioningContext) -> None:
        self.providers = providers
        self.ctx = ctx

    def _check_cancelled(self) -> None:
        self.ctx.token.raise_if_cancelled()

    async def start_control_plane(self, spec: JobDistributorInput) -> ControlPlaneHandle:
        """
        Start the job distributor.

        Image pull failures get a hint about registry authentication.
        """
        logger.info(f"🚀 Starting Job Distributor ({spec.image})")
        try:
            handle = await self.providers.control_plane.start(spec)
        except Exception as e:
            message = str(e)
            if _is_pull_access_error(message):
                message = f"{message} - {PULL_ACCESS_HINT}"
            raise ControlPlaneStartError(
                f"failed to start Job Distributor: {message}", {"image": spec.image}
            ) from e
        logger.info(f"✅ Job Distributor ready at {handle.external_grpc_url}")
        return handle

    async def start_node_groups(
        self,
        topology: PlannedTopology,
        custom_binaries: Sequence[str],
        blockchains: Sequence[BlockchainOutput],
    ) -> list[NodeGroupHandle]:
        """Start node groups sequentially, in topology order."""
        handles: list[NodeGroupHandle] = []
        for group in topology.groups:
            self._check_cancelled()
            logger.info(f"🚀 Starting node set '{group.name}' ({group.node_set.node_count} node(s))")
            try:
                handle = await self.providers.node_groups.start(group, custom_binaries, blockchains)
            except Exception as e:
                raise NodeGroupStartError(group.name, str(e)) from e
            handles.append(handle)
            logger.info(f"✅ Node set '{group.name}' started")
        return handles

    async def run(
        self,
        control_plane: JobDistributorInput,
        topology: PlannedTopology,
        custom_binaries: Sequence[str],
        blockchains: Sequence[BlockchainOutput],
    ) -> tuple[ControlPlaneHandle, list[NodeGroupHandle]]:
        """
        Start the control plane and all node groups concurrently.

        Returns:
            (control plane handle, node group handles in topology order)

        Raises:
            ProvisioningInterrupted: Cancellation was requested.
            ProvisioningError: The first failure, wrapped.
        """
        jd_task = asyncio.create_task(
            self.start_control_plane(control_plane), name="job-distributor"
        )
        dons_task = asyncio.create_task(
            self.start_node_groups(topology, custom_binaries, blockchains), name="node-groups"
        )
        tasks = (jd_task, dons_task)

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        # Both may fail in the same iteration; the job distributor error wins then
        failed = next(
            (task for task in tasks if task in done and not task.cancelled() and task.exception()),
            None,
        )
        if failed is None:
            return jd_task.result(), dons_task.result()

        for task in pending:
            logger.debug(f"Cancelling '{task.get_name()}' after sibling failure")
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        error = failed.exception()
        if isinstance(error, ProvisioningInterrupted):
            raise error
        raise ProvisioningError(
            f"failed to start Job Distributor or DONs: {error}",
            {"task": failed.get_name()},
        ) from error
