"""
crenv Utils - Logging, redaction and console display.
"""

from crenv.utils.display import DisplayManager, get_display_manager
from crenv.utils.logger import log_prefix, setup_logger

__all__ = [
    "DisplayManager",
    "get_display_manager",
    "log_prefix",
    "setup_logger",
]
