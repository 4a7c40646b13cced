"""
Logging configuration for crenv.

Read from CRENV_LOG_* environment variables only; crenv never writes it.
The loguru file sink always exists, the stderr sink is opt-in.
"""
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_FILE_NAME = "app.log"
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

ENV_VARS = {
    "CRENV_LOG_DIR": "log_dir",
    "CRENV_LOG_LEVEL": "console_level",
    "CRENV_LOG_FILE_LEVEL": "file_level",
    "CRENV_LOG_ROTATION": "rotation",
    "CRENV_LOG_RETENTION": "retention",
    "CRENV_LOG_COMPRESSION": "compression",
    "CRENV_LOG_JSON": "json_logs",
    "CRENV_LOG_CONSOLE": "console_enabled",
}


def default_log_dir() -> str:
    return str(Path.home() / ".crenv" / "logs")


class LogConfig(BaseModel):
    """
    Sinks set up by ``setup_logger``.

    ``rotation`` and ``retention`` are passed to loguru unchanged, so both
    sizes ("10 MB") and durations ("1 day") are accepted.
    """

    model_config = ConfigDict(frozen=True)

    log_dir: str = Field(default_factory=default_log_dir)
    console_level: str = "WARNING"
    file_level: str = "DEBUG"
    rotation: str = "10 MB"
    retention: str = "1 week"
    compression: Optional[Literal["zip", "gz"]] = "gz"
    json_logs: bool = False
    console_enabled: bool = False

    @field_validator("console_level", "file_level")
    @classmethod
    def _check_level(cls, level: str) -> str:
        level = level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {level}")
        return level

    @field_validator("compression", mode="before")
    @classmethod
    def _no_compression(cls, value):
        if isinstance(value, str) and value.lower() in ("", "none"):
            return None
        return value

    @property
    def log_path(self) -> Path:
        """Full path to the log file."""
        return Path(self.log_dir) / LOG_FILE_NAME


def load_log_config(env: Optional[dict[str, str]] = None) -> LogConfig:
    """Build the config from CRENV_LOG_* variables over the defaults."""
    environ = os.environ if env is None else env
    values = {field: environ[var] for var, field in ENV_VARS.items() if var in environ}
    return LogConfig(**values)


_cached_config: Optional[LogConfig] = None


def get_log_config() -> LogConfig:
    """Get the current logging configuration (cached)."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_log_config()
    return _cached_config


def reset_log_config() -> None:
    global _cached_config
    _cached_config = None
