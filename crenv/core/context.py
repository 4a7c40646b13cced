"""
crenv Core - Provisioning context.

One ProvisioningContext is created per provisioning attempt and passed
explicitly to every component that needs the tracker, the start time or
the cancellation token. Nothing here is process-wide.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from crenv.core.exceptions import ProvisioningInterrupted

if TYPE_CHECKING:
    from crenv.core.observability import Tracker


class CancellationToken:
    """
    Cooperative cancellation flag.

    The signal watcher sets the token with the signal name as reason; the
    provisioning flow checks it at its suspension points and stops
    scheduling new work.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Reason given when cancellation was requested."""
        return self._reason

    def cancel(self, reason: str) -> None:
        """Request cancellation. Only the first reason is kept."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()
            logger.debug(f"🛑 Cancellation requested: {reason}")

    def raise_if_cancelled(self) -> None:
        """Raise ProvisioningInterrupted if cancellation was requested."""
        if self._event.is_set():
            raise ProvisioningInterrupted(self._reason or "cancelled")

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()


@dataclass
class ProvisioningContext:
    """
    Per-attempt state shared between the lifecycle guard and provisioning.

    Written once when the attempt starts and read afterwards.
    """

    tracker: Tracker
    started_at: float = field(default_factory=time.monotonic)
    token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def elapsed(self) -> float:
        """Seconds since the attempt started."""
        return time.monotonic() - self.started_at

    @classmethod
    def create(cls, tracker: Tracker | None = None) -> ProvisioningContext:
        """
        Create a fresh context for one attempt.

        Args:
            tracker: Telemetry tracker. Defaults to the configured tracker.

        Returns:
            New ProvisioningContext with the start time captured now.
        """
        if tracker is None:
            from crenv.core.observability import create_tracker

            tracker = create_tracker()
        return cls(tracker=tracker)
