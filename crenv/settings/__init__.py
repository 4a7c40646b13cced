"""
crenv Settings - Artifacts written after a successful startup.
"""

from crenv.settings.writer import SETTINGS_FILE_NAME, build_settings, write_settings_file

__all__ = ["SETTINGS_FILE_NAME", "build_settings", "write_settings_file"]
