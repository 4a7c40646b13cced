"""
crenv Lifecycle - Startup guard.

Wraps one provisioning attempt: stale container removal, signal handling,
telemetry, cleanup on failure and the settings artifact on success.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from crenv.config.models import ProvisioningRequest
from crenv.core.context import ProvisioningContext
from crenv.core.exceptions import (
    ConfigurationError,
    CrenvError,
    ProvisioningError,
    ProvisioningInterrupted,
    SettingsWriteError,
    UnexpectedProvisioningError,
    first_line,
)
from crenv.core.observability import Tracker, track_startup
from crenv.core.types import InfraType, StartupOutcome
from crenv.jobs.models import JobSpecFactory
from crenv.lifecycle.cleanup import EnvironmentCleaner
from crenv.provisioning.models import ProvisioningResult
from crenv.provisioning.orchestrator import provision
from crenv.providers.base import ProviderSet
from crenv.settings.writer import write_settings_file
from crenv.utils.logger import log_prefix

DEFAULT_WAIT_ON_ERROR = 15.0
HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass
class StartReport:
    """Successful startup plus the fate of the settings artifact."""

    result: ProvisioningResult
    elapsed_seconds: float
    settings_path: Path | None = None
    settings_error: SettingsWriteError | None = None


class LifecycleGuard:
    """
    Runs provisioning with guaranteed teardown on failure.

    Usage:
        guard = LifecycleGuard(providers, tracker)
        report = await guard.start(request)
    """

    def __init__(
        self,
        providers: ProviderSet,
        tracker: Tracker | None = None,
        wait_on_error: float = DEFAULT_WAIT_ON_ERROR,
        settings_dir: Path | None = None,
        extra_job_spec_factories: Sequence[JobSpecFactory] = (),
    ) -> None:
        self.providers = providers
        self.tracker = tracker
        self.wait_on_error = wait_on_error
        self.settings_dir = settings_dir
        self.extra_job_spec_factories = tuple(extra_job_spec_factories)

    def _cleaner(self, request: ProvisioningRequest) -> EnvironmentCleaner:
        crib = request.config.infra.crib
        return EnvironmentCleaner(
            self.providers.containers,
            request.infra_type,
            crib.namespace if crib else "",
        )

    def _install_signal_handlers(
        self,
        loop: asyncio.AbstractEventLoop,
        ctx: ProvisioningContext,
        task: asyncio.Task,
    ) -> list[signal.Signals]:
        def on_signal(sig: signal.Signals) -> None:
            logger.warning(f"{log_prefix('🛑')} Received signal {sig.name}, stopping")
            ctx.token.cancel(sig.name)
            task.cancel()

        installed: list[signal.Signals] = []
        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, on_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug(f"Cannot watch {sig.name} on this platform")
                continue
            installed.append(sig)
        return installed

    def _report(
        self,
        ctx: ProvisioningContext,
        request: ProvisioningRequest,
        error: BaseException | None = None,
        panicked: bool | None = None,
    ) -> None:
        track_startup(
            ctx.tracker,
            StartupOutcome(
                success=error is None,
                elapsed_seconds=ctx.elapsed,
                infra_type=str(request.infra_type),
                has_built_image=request.has_built_image,
                error_message=first_line(error) if error is not None else None,
                panicked=panicked,
            ),
        )

    async def _wait_before_cleanup(self, ctx: ProvisioningContext) -> None:
        """Grace period before removal, cut short by a termination signal."""
        if self.wait_on_error <= 0 or ctx.token.cancelled:
            return
        logger.info(f"Waiting {self.wait_on_error:.0f}s before removing containers")
        waiter = asyncio.ensure_future(ctx.token.wait())
        done, _ = await asyncio.wait({waiter}, timeout=self.wait_on_error)
        if not done:
            waiter.cancel()

    async def _cleanup_after_failure(
        self,
        ctx: ProvisioningContext,
        cleaner: EnvironmentCleaner,
        error: CrenvError | Exception,
    ) -> None:
        await self._wait_before_cleanup(ctx)
        await cleaner.cleanup()
        if ctx.token.cancelled:
            raise ProvisioningInterrupted(ctx.token.reason or "cancelled") from error

    async def start(self, request: ProvisioningRequest) -> StartReport:
        """
        Provision an environment.

        Returns:
            StartReport of a running environment.

        Raises:
            ConfigurationError: Invalid request, nothing was started or cleaned.
            ProvisioningInterrupted: A termination signal arrived.
            ProvisioningError: Startup failed, resources were removed.
            UnexpectedProvisioningError: Startup crashed, resources were removed.
        """
        ctx = ProvisioningContext.create(self.tracker)
        cleaner = self._cleaner(request)

        # Leftovers from an earlier run would clash on names and ports
        if request.infra_type == InfraType.DOCKER:
            await cleaner.cleanup()

        loop = asyncio.get_running_loop()
        task = asyncio.create_task(
            provision(request, self.providers, ctx, self.extra_job_spec_factories),
            name="provision",
        )
        installed = self._install_signal_handlers(loop, ctx, task)

        try:
            result = await task
        except asyncio.CancelledError:
            if not ctx.token.cancelled:
                raise
            interrupted = ProvisioningInterrupted(ctx.token.reason or "cancelled")
            self._report(ctx, request, interrupted, panicked=False)
            await cleaner.cleanup()
            raise interrupted from None
        except ProvisioningInterrupted as e:
            self._report(ctx, request, e, panicked=False)
            await cleaner.cleanup()
            raise
        except ConfigurationError as e:
            self._report(ctx, request, e, panicked=False)
            raise
        except CrenvError as e:
            logger.error(f"{log_prefix('❌')} {e}")
            self._report(ctx, request, e, panicked=False)
            await self._cleanup_after_failure(ctx, cleaner, e)
            raise ProvisioningError(f"failed to start environment: {e.message}", e.details) from e
        except Exception as e:
            logger.opt(exception=e).error(f"{log_prefix('❌')} Unexpected failure: {e}")
            self._report(ctx, request, e, panicked=True)
            await self._cleanup_after_failure(ctx, cleaner, e)
            raise UnexpectedProvisioningError(e) from e
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

        elapsed = ctx.elapsed
        self._report(ctx, request)
        logger.info(f"{log_prefix('✅')} Environment started in {elapsed:.2f}s")

        report = StartReport(result=result, elapsed_seconds=elapsed)
        try:
            report.settings_path = write_settings_file(result, self.settings_dir)
        except SettingsWriteError as e:
            logger.error(f"{e}")
            report.settings_error = e
        return report
