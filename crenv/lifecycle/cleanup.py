"""
crenv Lifecycle - Best-effort resource removal.

Removal never raises: failures are logged together with the command the
user can run to finish the job by hand.
"""

from __future__ import annotations

from loguru import logger

from crenv.core.exceptions import CleanupError
from crenv.core.types import FRAMEWORK_LABEL, InfraType
from crenv.providers.base import ContainerEngine
from crenv.utils.logger import log_prefix

MANUAL_DOCKER_CLEANUP = (
    "failed to remove environment containers, remove them manually with: "
    f"docker rm -f -v $(docker ps -aq --filter label={FRAMEWORK_LABEL})"
)
MANUAL_CRIB_CLEANUP = "remote environment is not removed automatically, delete namespace '{namespace}' manually"


async def remove_test_containers(engine: ContainerEngine, label: str = FRAMEWORK_LABEL) -> list[str]:
    """
    Force-remove every container carrying ``label``, with its volumes.

    Every container is attempted even when an earlier one fails.

    Returns:
        IDs of the removed containers.

    Raises:
        CleanupError: Listing failed, or at least one container was not removed.
    """
    container_ids = await engine.list_containers(label)
    removed: list[str] = []
    failed: list[str] = []
    for container_id in container_ids:
        try:
            await engine.remove_container(container_id, remove_volumes=True)
        except Exception as e:
            logger.debug(f"Could not remove {container_id[:12]}: {e}")
            failed.append(container_id)
        else:
            removed.append(container_id)

    if failed:
        raise CleanupError(f"{len(failed)} container(s) could not be removed", failed)
    return removed


class EnvironmentCleaner:
    """
    Idempotent teardown of one environment.

    Every call repeats the full removal; nothing is cached between calls.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        infra_type: InfraType = InfraType.DOCKER,
        namespace: str = "",
    ) -> None:
        self.engine = engine
        self.infra_type = infra_type
        self.namespace = namespace

    async def cleanup(self) -> bool:
        """
        Remove environment resources.

        Returns:
            True when everything was removed.
        """
        if self.infra_type == InfraType.CRIB:
            logger.warning(MANUAL_CRIB_CLEANUP.format(namespace=self.namespace))
            return False

        logger.info(f"{log_prefix('🧹')} Removing environment containers")
        try:
            removed = await remove_test_containers(self.engine)
        except Exception as e:
            logger.error(f"{e}")
            logger.error(MANUAL_DOCKER_CLEANUP)
            return False

        logger.info(f"{log_prefix('🧹')} Removed {len(removed)} container(s)")
        return True


async def stop_environment(engine: ContainerEngine) -> bool:
    """
    Tear down a running local environment.

    Returns:
        True when every container was removed.
    """
    return await EnvironmentCleaner(engine).cleanup()
