"""
crenv Core - Developer-experience telemetry via PostHog.

Tracks anonymous startup results to help improve the environment tooling.
No hostnames, no keys, no config content.

Opt-out:
    CRENV_TELEMETRY=off   (environment variable)

Events:
    - startup.result  {success, infra, error?, panicked?}
    - startup.time    {duration_seconds, has_built_image}
"""

from __future__ import annotations

import os
import platform
import uuid
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger
from posthog import Posthog

from crenv.core.types import StartupOutcome

STARTUP_RESULT_EVENT = "startup.result"
STARTUP_TIME_EVENT = "startup.time"

_DEFAULT_HOST = "https://eu.posthog.com"


@runtime_checkable
class Tracker(Protocol):
    """Telemetry sink. Implementations raise on delivery failure."""

    def track(self, event: str, properties: dict[str, Any]) -> None:
        """Send one event."""
        ...


class NoOpTracker:
    """Tracker used when telemetry is disabled."""

    def track(self, event: str, properties: dict[str, Any]) -> None:
        return None


class PostHogTracker:
    """
    Tracker backed by a PostHog client.

    Uses a persistent anonymous ID stored under ~/.crenv.
    """

    def __init__(
        self,
        api_key: str,
        host: str = _DEFAULT_HOST,
        client: Any | None = None,
        id_file: Path | None = None,
    ) -> None:
        self._client = client or Posthog(api_key, host=host)
        self._id_file = id_file or Path.home() / ".crenv" / "telemetry_id"
        self._anonymous_id: str | None = None

    @property
    def anonymous_id(self) -> str:
        """Persistent anonymous UUID (created once, stored locally)."""
        if self._anonymous_id:
            return self._anonymous_id

        if self._id_file.exists():
            self._anonymous_id = self._id_file.read_text().strip()
        else:
            self._anonymous_id = str(uuid.uuid4())
            try:
                self._id_file.parent.mkdir(parents=True, exist_ok=True)
                self._id_file.write_text(self._anonymous_id)
            except OSError as e:
                logger.debug(f"📊 Telemetry ID not persisted: {e}")

        return self._anonymous_id

    def track(self, event: str, properties: dict[str, Any]) -> None:
        payload = {
            **properties,
            "os": platform.system().lower(),
            "python": platform.python_version(),
        }
        self._client.capture(
            event=event,
            distinct_id=self.anonymous_id,
            properties=payload,
        )

    def shutdown(self) -> None:
        """Flush pending events."""
        self._client.shutdown()


def is_telemetry_enabled() -> bool:
    """Check the opt-out environment variable."""
    opt_out = os.getenv("CRENV_TELEMETRY", "on").lower()
    return opt_out not in ("off", "0", "false", "no")


def create_tracker() -> Tracker:
    """
    Build the configured tracker.

    Returns a NoOpTracker when telemetry is disabled or no PostHog key is
    configured (CRENV_POSTHOG_API_KEY).
    """
    if not is_telemetry_enabled():
        logger.debug("📊 Telemetry disabled (CRENV_TELEMETRY=off)")
        return NoOpTracker()

    api_key = os.getenv("CRENV_POSTHOG_API_KEY", "")
    if not api_key:
        logger.debug("📊 Telemetry skipped: PostHog API key not configured")
        return NoOpTracker()

    host = os.getenv("CRENV_POSTHOG_HOST", _DEFAULT_HOST)
    logger.debug("📊 Telemetry enabled (opt-out: CRENV_TELEMETRY=off)")
    return PostHogTracker(api_key, host=host)


def _safe_track(tracker: Tracker, event: str, properties: dict[str, Any]) -> bool:
    """Send an event. Never raises; telemetry must never break startup."""
    try:
        tracker.track(event, properties)
    except Exception as e:
        logger.warning(f"failed to track {event}: {e}")
        return False
    return True


def track_startup(tracker: Tracker, outcome: StartupOutcome) -> None:
    """
    Emit the startup telemetry for one provisioning attempt.

    startup.result is always sent; startup.time only on success.

    Args:
        tracker: Destination tracker.
        outcome: Outcome of the attempt.
    """
    metadata: dict[str, Any] = {
        "success": outcome.success,
        "infra": outcome.infra_type,
    }
    if outcome.error_message is not None:
        metadata["error"] = outcome.error_message
    if outcome.panicked is not None:
        metadata["panicked"] = outcome.panicked

    _safe_track(tracker, STARTUP_RESULT_EVENT, metadata)

    if outcome.success:
        _safe_track(
            tracker,
            STARTUP_TIME_EVENT,
            {
                "duration_seconds": outcome.elapsed_seconds,
                "has_built_image": outcome.has_built_image,
            },
        )
