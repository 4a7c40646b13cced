"""
crenv Jobs - Job specs and capability registrations.

The assembler lives in ``crenv.jobs.assembler``.
"""

from crenv.jobs.models import (
    CapabilityRegistration,
    ContractFactory,
    JobSpec,
    JobSpecContext,
    JobSpecFactory,
)

__all__ = [
    "CapabilityRegistration",
    "ContractFactory",
    "JobSpec",
    "JobSpecContext",
    "JobSpecFactory",
]
