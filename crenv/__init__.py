"""
crenv - ephemeral DON environments for integration testing.

Plans a node-group topology, assembles job specs for every capability,
and brings up the job distributor and all DONs with rollback on failure.
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("crenv")
except PackageNotFoundError:
    # Package not installed, fallback to pyproject.toml
    __version__ = "0.1.0"

__author__ = "crenv Contributors"
