"""
crenv Settings - Workflow CLI settings artifact.

After a successful startup the workflow tooling needs to know where the
chains are and which DON runs workflows. That is written to ``cre.yaml``
in the invocation directory.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from crenv.core.exceptions import SettingsWriteError
from crenv.provisioning.models import ProvisioningResult

SETTINGS_FILE_NAME = "cre.yaml"
DEFAULT_PROFILE = "test"
SETTINGS_FILE_MODE = 0o600


def build_settings(result: ProvisioningResult, profile: str = DEFAULT_PROFILE) -> dict[str, Any]:
    """
    Settings document for one provisioned environment.

    Returns:
        ``{profile: {...}}`` ready for YAML serialization.
    """
    home = result.home_chain
    return {
        profile: {
            "user-workflow": {
                "workflow-owner-address": home.deployer_address,
                "workflow-don-id": result.topology.workflow_don_id,
            },
            "home-chain-selector": home.chain_selector,
            "contracts": dict(home.contract_addresses),
            "rpcs": {chain.chain_selector: chain.rpc_http_url for chain in result.blockchains},
        }
    }


def write_settings_file(
    result: ProvisioningResult,
    directory: Path | None = None,
    profile: str = DEFAULT_PROFILE,
) -> Path:
    """
    Write ``cre.yaml``, replacing any existing file.

    Args:
        result: Successful provisioning result.
        directory: Target directory. Defaults to the current directory.
        profile: Top-level profile name.

    Returns:
        Path of the written file.

    Raises:
        SettingsWriteError: The file could not be written.
    """
    path = (directory or Path.cwd()) / SETTINGS_FILE_NAME
    try:
        content = yaml.safe_dump(build_settings(result, profile), sort_keys=False)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SETTINGS_FILE_MODE)
        with os.fdopen(fd, "w") as f:
            f.write(content)
        # O_CREAT mode does not apply to an existing file
        os.chmod(path, SETTINGS_FILE_MODE)
    except (OSError, yaml.YAMLError) as e:
        raise SettingsWriteError(str(path), str(e)) from e

    logger.info(f"📝 Settings file written: {path}")
    return path
