"""
crenv Capabilities - Binary path resolution.

A capability binary lives on the host and is copied into every node
container under a fixed directory. With a plugins image the binaries are
already in the image under well-known names.
"""

from __future__ import annotations

import posixpath
from pathlib import Path

from crenv.core.exceptions import InvalidConfigError, MissingCapabilityBinaryError
from crenv.core.types import Capability, InfraType

CONTAINER_CAPABILITIES_DIR: dict[InfraType, str] = {
    InfraType.DOCKER: "/home/capabilities",
    InfraType.CRIB: "/home/capabilities",
}

# Names used inside the plugins image
IMAGE_BINARY_NAMES: dict[str, str] = {
    Capability.CRON: "cron",
    Capability.LOG_EVENT_TRIGGER: "log-event-trigger",
    Capability.READ_CONTRACT: "readcontract",
}


def default_container_directory(infra_type: InfraType) -> str:
    """Directory inside the node container that holds capability binaries."""
    try:
        return CONTAINER_CAPABILITIES_DIR[infra_type]
    except KeyError:
        raise InvalidConfigError(
            f"unsupported infra type: {infra_type}", {"infra_type": str(infra_type)}
        ) from None


def resolve_binary_name(capability: str, host_path: str, plugins_image: str) -> str:
    """
    Name of a capability binary inside the container.

    Args:
        capability: Capability name.
        host_path: Host path configured for the binary (may be empty).
        plugins_image: Shared image, if any.

    Raises:
        MissingCapabilityBinaryError: No host path and no plugins image.
    """
    if plugins_image:
        return IMAGE_BINARY_NAMES.get(capability, capability)
    if not host_path:
        raise MissingCapabilityBinaryError(capability)
    return Path(host_path).name


def container_binary_path(
    capability: str,
    host_path: str,
    plugins_image: str,
    infra_type: InfraType,
) -> str:
    """Absolute path of a capability binary inside the container."""
    return posixpath.join(
        default_container_directory(infra_type),
        resolve_binary_name(capability, host_path, plugins_image),
    )
