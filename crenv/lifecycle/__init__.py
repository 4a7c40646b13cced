"""
crenv Lifecycle - Guarded startup and teardown.
"""

from crenv.lifecycle.cleanup import EnvironmentCleaner, remove_test_containers, stop_environment
from crenv.lifecycle.guard import LifecycleGuard, StartReport

__all__ = [
    "EnvironmentCleaner",
    "LifecycleGuard",
    "StartReport",
    "remove_test_containers",
    "stop_environment",
]
