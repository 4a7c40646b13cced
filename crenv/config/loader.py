"""
crenv Config - TOML loading.

Configuration files are listed in CTF_CONFIGS (comma separated) and merged
left to right: tables merge recursively, every other value is replaced.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from crenv.config.models import DEFAULT_DEPLOYER_PRIVATE_KEY, EnvironmentConfig
from crenv.core.exceptions import InvalidConfigError
from crenv.core.types import TopologyMode

CONFIGS_ENV_VAR = "CTF_CONFIGS"
PRIVATE_KEY_ENV_VAR = "PRIVATE_KEY"

DEFAULT_CONFIGS: dict[TopologyMode, str] = {
    TopologyMode.SIMPLIFIED: "configs/single-don.toml",
    TopologyMode.FULL: "configs/workflow-capabilities-don.toml",
}


def default_config_path(topology: TopologyMode) -> str:
    """Default config file for a topology."""
    return DEFAULT_CONFIGS[topology]


def resolve_config_paths(topology: TopologyMode, env: dict[str, str] | None = None) -> list[Path]:
    """
    Return the config files to load.

    Uses CTF_CONFIGS when set, otherwise the default for the topology.
    """
    environ = os.environ if env is None else env
    raw = environ.get(CONFIGS_ENV_VAR, "").strip()
    if not raw:
        raw = default_config_path(topology)
        logger.info(f"Using default {CONFIGS_ENV_VAR} for '{topology}' topology: {raw}")
    return [Path(part.strip()) for part in raw.split(",") if part.strip()]


def merge_tables(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge two TOML documents, override wins."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_tables(merged[key], value)
        else:
            merged[key] = value
    return merged


def read_toml(path: Path) -> dict[str, Any]:
    """Read one TOML file."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise InvalidConfigError(f"config file not found: {path}", {"path": str(path)}) from e
    except tomllib.TOMLDecodeError as e:
        raise InvalidConfigError(f"invalid TOML in {path}: {e}", {"path": str(path)}) from e


def load_config(paths: list[Path]) -> EnvironmentConfig:
    """
    Load and validate the environment configuration.

    Args:
        paths: Config files, merged left to right.

    Returns:
        Validated EnvironmentConfig.

    Raises:
        InvalidConfigError: If a file is missing, unparsable or invalid.
    """
    if not paths:
        raise InvalidConfigError("no configuration files given")

    data: dict[str, Any] = {}
    for path in paths:
        data = merge_tables(data, read_toml(path))
        logger.debug(f"📁 Loaded config {path}")

    try:
        return EnvironmentConfig.model_validate(data)
    except ValidationError as e:
        raise InvalidConfigError(
            f"failed to validate configuration: {e.error_count()} error(s)",
            {"errors": [err["msg"] for err in e.errors()]},
        ) from e


def load_config_for_topology(topology: TopologyMode) -> EnvironmentConfig:
    """Load the configuration selected by CTF_CONFIGS or the topology default."""
    return load_config(resolve_config_paths(topology))


def resolve_deployer_key(env: dict[str, str] | None = None) -> str:
    """Deployer private key from PRIVATE_KEY, falling back to the dev key."""
    environ = os.environ if env is None else env
    key = environ.get(PRIVATE_KEY_ENV_VAR, "")
    if key:
        return key
    logger.info(f"{PRIVATE_KEY_ENV_VAR} not set, using the default local development key")
    return DEFAULT_DEPLOYER_PRIVATE_KEY
