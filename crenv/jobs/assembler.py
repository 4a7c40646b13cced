"""
crenv Jobs - Job spec assembler.

Composes the ordered list of job spec factories and runs them against a
shared context. Built-in factories run first, then the per-chain ones,
then caller extensions. Extensions can only add jobs.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from loguru import logger

from crenv.capabilities.factories import gateway_job_spec_factory
from crenv.core.types import Capability
from crenv.jobs.models import JobSpec, JobSpecContext, JobSpecFactory

if TYPE_CHECKING:
    from crenv.capabilities.registry import CapabilityRegistry

GATEWAY_ALLOWED_IPS_CIDR = ("0.0.0.0/0",)

_BUILTIN_BEFORE_GATEWAY = (
    Capability.WEB_API_TRIGGER,
    Capability.WEB_API_TARGET,
    Capability.CONSENSUS,
    Capability.CRON,
)
_BUILTIN_AFTER_GATEWAY = (Capability.COMPUTE,)
_PER_CHAIN = (Capability.LOG_EVENT_TRIGGER, Capability.READ_CONTRACT)


class JobSpecAssembler:
    """Ordered job spec factory pipeline."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        extra_allowed_gateway_ports: Sequence[int] = (),
        extensions: Sequence[JobSpecFactory] = (),
    ) -> None:
        self.registry = registry
        self.extra_allowed_gateway_ports = list(extra_allowed_gateway_ports)
        self.extensions = list(extensions)

    def _builtin(self, capability: str, chain_id: int | None = None) -> list[JobSpecFactory]:
        binding = self.registry.get(capability, chain_id)
        if binding is None or binding.job_spec_factory is None:
            return []
        return [binding.job_spec_factory]

    def factories(self) -> list[JobSpecFactory]:
        """Factories in execution order."""
        ordered: list[JobSpecFactory] = []
        for capability in _BUILTIN_BEFORE_GATEWAY:
            ordered.extend(self._builtin(capability))
        ordered.append(
            gateway_job_spec_factory(self.extra_allowed_gateway_ports, [], GATEWAY_ALLOWED_IPS_CIDR)
        )
        for capability in _BUILTIN_AFTER_GATEWAY:
            ordered.extend(self._builtin(capability))
        for chain_id in self.registry.chain_ids():
            for capability in _PER_CHAIN:
                ordered.extend(self._builtin(capability, chain_id))
        ordered.extend(self.extensions)
        return ordered

    def run(self, ctx: JobSpecContext) -> list[JobSpec]:
        """
        Run every factory in order.

        Args:
            ctx: Shared context; factories may read and write ``ctx.artifacts``.

        Returns:
            All produced job specs, in factory order.
        """
        specs: list[JobSpec] = []
        for factory in self.factories():
            produced = factory(ctx)
            logger.debug(f"{getattr(factory, '__name__', 'factory')} produced {len(produced)} job(s)")
            specs.extend(produced)
        return specs
