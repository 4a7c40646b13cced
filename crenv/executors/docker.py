"""
crenv Executors - Docker container engine.

Implements the ContainerEngine protocol on top of the docker SDK. The SDK
is blocking, so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any

import docker
from docker.errors import APIError, DockerException, NotFound
from loguru import logger

from crenv.core.exceptions import CleanupError

DEFAULT_CLIENT_TIMEOUT = 60


class DockerEngine:
    """Container engine backed by the local Docker daemon."""

    def __init__(self, client: Any | None = None, timeout: int = DEFAULT_CLIENT_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    @property
    def client(self) -> Any:
        """Docker client, created on first use."""
        if self._client is None:
            try:
                self._client = docker.from_env(timeout=self._timeout)
            except DockerException as e:
                raise CleanupError(f"cannot connect to Docker: {e}") from e
        return self._client

    def _list(self, label: str) -> list[str]:
        containers = self.client.containers.list(all=True, filters={"label": label})
        return [container.id for container in containers]

    def _remove(self, container_id: str, remove_volumes: bool) -> None:
        try:
            container = self.client.containers.get(container_id)
        except NotFound:
            logger.debug(f"Container {container_id[:12]} already gone")
            return
        container.remove(force=True, v=remove_volumes)

    async def list_containers(self, label: str) -> list[str]:
        try:
            return await asyncio.to_thread(self._list, label)
        except DockerException as e:
            raise CleanupError(f"failed to list containers with label {label}: {e}") from e

    async def remove_container(self, container_id: str, remove_volumes: bool = True) -> None:
        try:
            await asyncio.to_thread(self._remove, container_id, remove_volumes)
        except NotFound:
            return
        except APIError as e:
            raise CleanupError(
                f"failed to remove container {container_id[:12]}: {e.explanation or e}",
                [container_id],
            ) from e
        except DockerException as e:
            raise CleanupError(str(e), [container_id]) from e
