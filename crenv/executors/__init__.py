"""
crenv Executors - Container engine implementations.
"""

from crenv.executors.docker import DockerEngine

__all__ = ["DockerEngine"]
