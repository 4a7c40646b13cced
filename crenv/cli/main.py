"""
crenv CLI - Start and stop local DON environments.

This module provides:
- crenv env start: provision an environment and write cre.yaml
- crenv env stop: remove every environment container
"""
import asyncio
import re
import sys

import click
from pydantic import ValidationError

from crenv import __version__
from crenv.core.exceptions import ConfigurationError, CrenvError, ProvisioningInterrupted
from crenv.core.types import TopologyMode, WorkflowTrigger
from crenv.utils.display import get_display_manager

_DURATION = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


class DurationParam(click.ParamType):
    """Duration such as 15s, 2m or 500ms, converted to seconds."""

    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        match = _DURATION.match(str(value))
        if not match:
            self.fail(f"{value!r} is not a valid duration (e.g. 15s, 2m)", param, ctx)
        return float(match.group(1)) * _UNIT_SECONDS[match.group(2)]


DURATION = DurationParam()


@click.group()
@click.version_option(version=__version__, prog_name="crenv")
def cli():
    """crenv - ephemeral DON environments for integration testing."""


@cli.group()
def env():
    """Manage the local environment."""


@env.command()
@click.option(
    "--topology", "-t",
    type=click.Choice([mode.value for mode in TopologyMode]),
    default=TopologyMode.SIMPLIFIED.value,
    show_default=True,
    help="Topology to start",
)
@click.option(
    "--wait-on-error-timeout", "-w",
    type=DURATION,
    default="15s",
    show_default=True,
    help="Wait before removing containers after a failure",
)
@click.option(
    "--extra-allowed-gateway-ports", "-e",
    type=int,
    multiple=True,
    help="Extra ports the gateway may call (repeatable)",
)
@click.option(
    "--with-plugins-docker-image", "-p",
    default="",
    help="Image with every capability binary included",
)
@click.option("--with-example", "-x", is_flag=True, help="Deploy the example workflow")
@click.option(
    "--example-workflow-trigger", "-y",
    type=click.Choice([trigger.value for trigger in WorkflowTrigger]),
    default=WorkflowTrigger.WEB_TRIGGER.value,
    show_default=True,
    help="Trigger used by the example workflow",
)
@click.option("--providers", default=None, help="Provider bundle as module:attr (or $CRENV_PROVIDERS)")
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr")
def start(
    topology,
    wait_on_error_timeout,
    extra_allowed_gateway_ports,
    with_plugins_docker_image,
    with_example,
    example_workflow_trigger,
    providers,
    verbose,
):
    """
    Start a local environment.

    Example: crenv env start -t full -e 8080
    """
    from crenv.config.loader import load_config_for_topology, resolve_deployer_key
    from crenv.config.models import ProvisioningRequest
    from crenv.core.observability import create_tracker
    from crenv.lifecycle.guard import LifecycleGuard
    from crenv.providers.loader import load_provider_set
    from crenv.topology.planner import plan_topology
    from crenv.utils.logger import setup_logger

    setup_logger(verbose=verbose)
    display = get_display_manager()
    mode = TopologyMode(topology)

    try:
        config = load_config_for_topology(mode)
        request = ProvisioningRequest(
            config=config,
            topology=mode,
            plugins_image=with_plugins_docker_image,
            extra_allowed_gateway_ports=list(extra_allowed_gateway_ports),
            with_example=with_example,
            example_workflow_trigger=WorkflowTrigger(example_workflow_trigger),
            deployer_private_key=resolve_deployer_key(),
        )
        bundle = load_provider_set(providers)
        planned = plan_topology(
            mode,
            config.node_sets,
            config.extra_capabilities,
            request.extra_binaries,
            request.plugins_image,
        )
    except ValidationError as e:
        display.error(f"Invalid options: {e.errors()[0]['msg']}")
        sys.exit(1)
    except ConfigurationError as e:
        display.error(str(e))
        sys.exit(1)

    display.show_banner(mode.value, request.infra_type.value)
    display.show_topology(planned)

    tracker = create_tracker()
    guard = LifecycleGuard(bundle, tracker, wait_on_error=wait_on_error_timeout)
    try:
        report = asyncio.run(guard.start(request))
    except ProvisioningInterrupted as e:
        display.error(e.message)
        sys.exit(130)
    except CrenvError as e:
        display.error(e.message)
        sys.exit(1)
    finally:
        shutdown = getattr(tracker, "shutdown", None)
        if shutdown is not None:
            shutdown()

    display.show_result(report.result, report.elapsed_seconds)
    if report.settings_error is not None:
        display.warning(f"Environment is running but {report.settings_error.message}")
    else:
        display.success(f"CRE CLI settings file created: {report.settings_path}")


@env.command()
@click.option("--providers", default=None, help="Provider bundle as module:attr (or $CRENV_PROVIDERS)")
@click.option("--verbose", "-v", is_flag=True, help="Log to stderr")
def stop(providers, verbose):
    """Remove every environment container."""
    from crenv.lifecycle.cleanup import stop_environment
    from crenv.utils.logger import setup_logger

    setup_logger(verbose=verbose)
    display = get_display_manager()

    if providers:
        from crenv.providers.loader import load_provider_set

        try:
            engine = load_provider_set(providers).containers
        except ConfigurationError as e:
            display.error(str(e))
            sys.exit(1)
    else:
        from crenv.executors.docker import DockerEngine

        engine = DockerEngine()

    if asyncio.run(stop_environment(engine)):
        display.success("Environment stopped")
    else:
        display.warning("Some containers could not be removed, see the log for manual cleanup")
        sys.exit(1)


if __name__ == "__main__":
    cli()
