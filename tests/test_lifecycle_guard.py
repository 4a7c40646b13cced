"""
Tests for the lifecycle guard: cleanup, telemetry and the settings artifact.
"""
import asyncio
import os
import signal
import stat

import pytest
import yaml
from conftest import (
    FakeBlockchainProvider,
    FakeContainerEngine,
    FakeControlPlaneProvider,
    FakeNodeGroupProvider,
    RecordingTracker,
)

from crenv.config.models import CribInput, InfraInput
from crenv.core.exceptions import (
    ProvisioningError,
    ProvisioningInterrupted,
    SettingsWriteError,
    TopologyMismatchError,
    UnexpectedProvisioningError,
)
from crenv.core.observability import STARTUP_RESULT_EVENT, STARTUP_TIME_EVENT
from crenv.core.types import InfraType, TopologyMode
from crenv.lifecycle.guard import LifecycleGuard
from crenv.providers.base import ProviderSet
from crenv.settings.writer import SETTINGS_FILE_NAME


def _providers(containers=None, node_groups=None, control_plane=None):
    return ProviderSet(
        containers=containers or FakeContainerEngine(["stale-1", "stale-2"]),
        blockchains=FakeBlockchainProvider(),
        control_plane=control_plane or FakeControlPlaneProvider(),
        node_groups=node_groups or FakeNodeGroupProvider(),
    )


class TestSuccessfulStart:
    """Happy path."""

    @pytest.mark.asyncio
    async def test_settings_and_telemetry(self, make_request, tracker, tmp_path):
        """Stale containers are removed, cre.yaml is written and both events sent."""
        providers = _providers()
        guard = LifecycleGuard(providers, tracker, wait_on_error=0, settings_dir=tmp_path)

        report = await guard.start(make_request())

        assert providers.containers.removed == ["stale-1", "stale-2"]
        assert report.settings_path == tmp_path / SETTINGS_FILE_NAME
        assert report.settings_error is None
        assert stat.S_IMODE(os.stat(report.settings_path).st_mode) == 0o600

        settings = yaml.safe_load(report.settings_path.read_text())
        assert settings["test"]["user-workflow"]["workflow-don-id"] == 1

        assert tracker.names() == [STARTUP_RESULT_EVENT, STARTUP_TIME_EVENT]
        assert tracker.get(STARTUP_RESULT_EVENT) == {"success": True, "infra": "docker"}
        assert tracker.get(STARTUP_TIME_EVENT)["has_built_image"] is False

    @pytest.mark.asyncio
    async def test_settings_write_failure_is_reported(self, make_request, tracker, tmp_path):
        """A settings failure does not fail the startup."""
        guard = LifecycleGuard(
            _providers(), tracker, wait_on_error=0, settings_dir=tmp_path / "missing" / "dir"
        )

        report = await guard.start(make_request())

        assert report.settings_path is None
        assert isinstance(report.settings_error, SettingsWriteError)
        assert report.result.topology.workflow_don_id == 1

    @pytest.mark.asyncio
    async def test_tracker_failure_only_logged(self, make_request, tmp_path):
        """Telemetry delivery failures never break startup."""
        guard = LifecycleGuard(
            _providers(), RecordingTracker(fail=True), wait_on_error=0, settings_dir=tmp_path
        )

        report = await guard.start(make_request())

        assert report.settings_path is not None


class TestFailedStart:
    """Failures are cleaned up and reported."""

    @pytest.mark.asyncio
    async def test_expected_failure(self, make_request, tracker, tmp_path):
        """A node group failure cleans up and is wrapped."""
        containers = FakeContainerEngine()
        guard = LifecycleGuard(
            _providers(containers, FakeNodeGroupProvider(fail_on="workflow")),
            tracker,
            wait_on_error=0,
            settings_dir=tmp_path,
        )

        with pytest.raises(ProvisioningError) as exc_info:
            await guard.start(make_request())

        assert str(exc_info.value).startswith("failed to start environment:")
        # pre-run cleanup plus cleanup after the failure
        assert containers.list_calls == 2
        result = tracker.get(STARTUP_RESULT_EVENT)
        assert result["success"] is False
        assert result["panicked"] is False
        assert "failed to create node set named workflow" in result["error"]
        assert "\n" not in result["error"]
        assert STARTUP_TIME_EVENT not in tracker.names()
        assert not (tmp_path / SETTINGS_FILE_NAME).exists()

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, make_request, tracker, tmp_path):
        """A crash in a job spec factory is recovered and flagged."""
        containers = FakeContainerEngine()

        def broken(ctx):
            raise KeyError("missing node")

        guard = LifecycleGuard(
            _providers(containers),
            tracker,
            wait_on_error=0,
            settings_dir=tmp_path,
            extra_job_spec_factories=[broken],
        )

        with pytest.raises(UnexpectedProvisioningError) as exc_info:
            await guard.start(make_request())

        assert isinstance(exc_info.value.original_error, KeyError)
        assert containers.list_calls == 2
        assert tracker.get(STARTUP_RESULT_EVENT)["panicked"] is True

    @pytest.mark.asyncio
    async def test_configuration_error_skips_cleanup(self, make_request, tracker, tmp_path):
        """Configuration errors are raised as-is without post-failure cleanup."""
        containers = FakeContainerEngine()
        guard = LifecycleGuard(_providers(containers), tracker, wait_on_error=0, settings_dir=tmp_path)

        with pytest.raises(TopologyMismatchError):
            await guard.start(make_request(TopologyMode.SIMPLIFIED, node_set_count=3))

        assert containers.list_calls == 1
        assert tracker.get(STARTUP_RESULT_EVENT)["success"] is False

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_mask_error(self, make_request, tracker, tmp_path):
        """The original error is raised even when cleanup fails."""
        containers = FakeContainerEngine(["stuck"], fail_remove={"stuck"})
        guard = LifecycleGuard(
            _providers(containers, FakeNodeGroupProvider(fail_on="workflow")),
            tracker,
            wait_on_error=0,
            settings_dir=tmp_path,
        )

        with pytest.raises(ProvisioningError, match="failed to start environment"):
            await guard.start(make_request())

    @pytest.mark.asyncio
    async def test_crib_skips_container_cleanup(self, make_request, tracker, tmp_path):
        """Remote environments are never touched through the container engine."""
        containers = FakeContainerEngine(["local"])
        request = make_request()
        infra = InfraInput(type=InfraType.CRIB, crib=CribInput(namespace="crenv-test"))
        request = request.model_copy(
            update={"config": request.config.model_copy(update={"infra": infra})}
        )
        guard = LifecycleGuard(
            _providers(containers, FakeNodeGroupProvider(fail_on="workflow")),
            tracker,
            wait_on_error=0,
            settings_dir=tmp_path,
        )

        with pytest.raises(ProvisioningError):
            await guard.start(request)

        assert containers.list_calls == 0
        assert tracker.get(STARTUP_RESULT_EVENT)["infra"] == "crib"


class TestInterruption:
    """Termination signals."""

    @pytest.mark.asyncio
    async def test_sigterm_cleans_up(self, make_request, tracker, tmp_path):
        """SIGTERM stops provisioning and removes containers."""
        containers = FakeContainerEngine()
        control_plane = FakeControlPlaneProvider(delay=5.0)
        guard = LifecycleGuard(
            _providers(containers, FakeNodeGroupProvider(delay=5.0), control_plane),
            tracker,
            wait_on_error=0,
            settings_dir=tmp_path,
        )

        task = asyncio.create_task(guard.start(make_request()))
        await asyncio.sleep(0.1)
        os.kill(os.getpid(), signal.SIGTERM)

        with pytest.raises(ProvisioningInterrupted) as exc_info:
            await task

        assert exc_info.value.signal_name == "SIGTERM"
        assert control_plane.cancelled
        assert containers.list_calls == 2
        assert tracker.get(STARTUP_RESULT_EVENT)["panicked"] is False
        assert not (tmp_path / SETTINGS_FILE_NAME).exists()

    @pytest.mark.asyncio
    async def test_sigterm_during_grace_period(self, make_request, tracker, tmp_path):
        """A signal after a failure skips the rest of the wait and still cleans up once."""
        containers = FakeContainerEngine()
        guard = LifecycleGuard(
            _providers(containers, FakeNodeGroupProvider(fail_on="workflow")),
            tracker,
            wait_on_error=5.0,
            settings_dir=tmp_path,
        )
        loop = asyncio.get_running_loop()

        task = asyncio.create_task(guard.start(make_request()))
        await asyncio.sleep(0.3)
        started = loop.time()
        os.kill(os.getpid(), signal.SIGTERM)

        with pytest.raises(ProvisioningInterrupted) as exc_info:
            await task

        assert loop.time() - started < 2.0
        assert exc_info.value.signal_name == "SIGTERM"
        assert "failed to create node set named workflow" in str(exc_info.value.__cause__)
        # pre-run cleanup plus one cleanup after the failure
        assert containers.list_calls == 2
        assert tracker.get(STARTUP_RESULT_EVENT)["panicked"] is False
