"""
crenv Capabilities - Capability bindings, binaries and factories.
"""

from crenv.capabilities.binaries import (
    CONTAINER_CAPABILITIES_DIR,
    container_binary_path,
    default_container_directory,
    resolve_binary_name,
)
from crenv.capabilities.registry import (
    CapabilityBinding,
    CapabilityRegistry,
    build_registry,
)

__all__ = [
    "CONTAINER_CAPABILITIES_DIR",
    "CapabilityBinding",
    "CapabilityRegistry",
    "build_registry",
    "container_binary_path",
    "default_container_directory",
    "resolve_binary_name",
]
