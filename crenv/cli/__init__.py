"""
crenv CLI.
"""

from crenv.cli.main import cli

__all__ = ["cli"]
