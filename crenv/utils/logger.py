"""
Centralized logging for crenv.

Provides:
- Configurable log levels and rotation
- Secret redaction
- File logging always, stderr only with --verbose

Configuration comes from CRENV_LOG_* environment variables, see log_config.py.
"""
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from crenv.utils.security import redact_sensitive_info


def use_emoji_logs() -> bool:
    """
    Check if emoji prefixes should be used in log messages.

    Returns True unless USE_EMOJI_LOGS is set to "0" or "false".
    """
    value = os.environ.get("USE_EMOJI_LOGS", "1").lower()
    return value not in ("0", "false", "no", "off")


_EMOJI_TO_ASCII = {
    "🚀": "[START]",
    "✅": "[OK]",
    "❌": "[ERROR]",
    "⚠️": "[WARN]",
    "🧹": "[CLEANUP]",
    "🛑": "[STOP]",
    "⏱️": "[TIMEOUT]",
    "🔑": "[KEY]",
    "📝": "[FILE]",
    "📊": "[STATS]",
}


def log_prefix(emoji: str) -> str:
    """
    Return the log prefix for the current USE_EMOJI_LOGS setting.

    Args:
        emoji: The emoji to use when emoji logs are enabled.

    Returns:
        The emoji, or its ASCII equivalent (empty string if unmapped).
    """
    if use_emoji_logs():
        return emoji
    return _EMOJI_TO_ASCII.get(emoji, "")


def _get_log_config():
    from crenv.utils.log_config import get_log_config
    return get_log_config()


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return redact_sensitive_info(value)
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(item) for item in value)
    return value


def redaction_patcher(record) -> None:
    """Redact secrets from the message and the bound extras of every record."""
    try:
        record["message"] = redact_sensitive_info(record["message"])
    except Exception:
        record["message"] = "[REDACTED]"

    for key in list(record["extra"].keys()):
        try:
            record["extra"][key] = _redact_value(record["extra"][key])
        except Exception:
            record["extra"][key] = "[REDACTED]"


def setup_logger(verbose: bool = False, config: Optional[Any] = None) -> None:
    """
    Configure loguru sinks.

    Rules:
    1. FILE: Always log to ~/.crenv/logs/app.log (rotated).
    2. CONSOLE: stderr only when verbose or console_enabled; otherwise the
       rich display owns the terminal.

    Args:
        verbose: Log DEBUG+ to stderr
        config: Optional LogConfig override (for testing)
    """
    logger.remove()

    if config is None:
        config = _get_log_config()

    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    def format_record(record):
        if config.json_logs:
            entry = {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "message": record["message"],
                "module": record["name"],
                "function": record["function"],
                "line": record["line"],
            }
            # Braces would be read as format fields by loguru
            return json.dumps(entry).replace("{", "{{").replace("}", "}}") + "\n"
        return "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}\n{exception}"

    logger.add(
        config.log_path,
        rotation=config.rotation,
        retention=config.retention,
        level=config.file_level,
        format=format_record,
        compression=config.compression,
        enqueue=True,
    )

    if verbose or config.console_enabled:
        console_format = (
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )
        logger.add(
            sys.stderr,
            format=console_format,
            level="DEBUG" if verbose else config.console_level,
            colorize=True,
        )

    logger.configure(patcher=redaction_patcher)
