"""CLI entrypoint for dd-agent-poc."""

import logging
from dataclasses import replace

import click
from botocore.exceptions import BotoCoreError, ClientError
from rich.table import Table

from dd_agent_poc.cli.errors import report_error
from dd_agent_poc.cli.state import (
    DeploymentState,
    StateError,
    clear_state,
    load_state,
    save_state,
)
from dd_agent_poc.cli.ui import console, report_step
from dd_agent_poc.core.deployments.aws_ecs import (
    TopologyError,
    WorkloadSpec,
    build_topology,
    check_topology,
    create_session,
    destroy_topology,
    get_identity,
)
from dd_agent_poc.core.settings import get_settings

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show stage level log messages.")
def cli(verbose: bool) -> None:
    """Provision and manage the dd-agent Fargate topology."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)


@cli.command()
@click.option("--env", "env_name", default=None, help="Environment name (default: ENV_NAME).")
@click.option("--image", default=None, help="Workload container image reference.")
@click.option("--min-instances", type=int, default=None)
@click.option("--max-instances", type=int, default=None)
@click.option("--requests-per-instance", type=int, default=None)
@click.option("--port", type=int, default=None, help="Published port.")
@click.option("--zones", type=int, default=None, help="Availability zone count.")
@click.option("--region", default=None, help="AWS region.")
@click.option("--profile", default=None, help="AWS profile.")
def deploy(
    env_name: str | None,
    image: str | None,
    min_instances: int | None,
    max_instances: int | None,
    requests_per_instance: int | None,
    port: int | None,
    zones: int | None,
    region: str | None,
    profile: str | None,
) -> None:
    """Assemble the topology for an environment."""
    aws, settings = get_settings()
    overrides = {
        "env_name": env_name,
        "image": image,
        "min_instances": min_instances,
        "max_instances": max_instances,
        "requests_per_instance_target": requests_per_instance,
        "published_port": port,
        "availability_zone_count": zones,
    }
    settings = settings.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    aws_region = region or aws.region
    aws_profile = profile or aws.profile

    config = settings.to_environment_config(aws_region)
    options = settings.to_topology_options()
    workload: WorkloadSpec | None = settings.to_workload()
    if workload is not None:
        workload = replace(workload, container_port=options.published_port)

    try:
        session = create_session(aws_region, aws_profile)
        identity = get_identity(session)
        report_step(f"Using AWS account {identity['Account']} ({identity['Arn']})")
        topology = build_topology(session, config, workload, options, report_step)
    except (TopologyError, RuntimeError, ClientError, BotoCoreError) as exc:
        logger.debug("Deployment failed", exc_info=True)
        report_error(exc)
        raise SystemExit(1) from exc

    path = save_state(DeploymentState.from_topology(topology, aws_region, aws_profile))
    outputs = topology.outputs()

    table = Table(title=f"Topology {config.environment_name}", header_style="bold cyan")
    table.add_column("Output", style="white", no_wrap=True)
    table.add_column("Value", style="bright_white")
    table.add_row("AlbDnsName", outputs.load_balancer_dns_name)
    table.add_row("ClusterName", outputs.cluster_name)
    table.add_row("ServiceName", outputs.service_name)
    table.add_row("VpcId", outputs.vpc_id)
    console.print(table)
    console.print(f"[dim]Saved deployment state to {path}[/dim]")


@cli.command()
@click.option("--env", "env_name", default=None, help="Environment name (default: ENV_NAME).")
def status(env_name: str | None) -> None:
    """Check the resources of a deployed environment."""
    env_name = env_name or _default_env_name()
    state = _require_state(env_name)
    try:
        session = create_session(state.aws_region, state.aws_profile)
        results = check_topology(session, state.resources)
    except (ClientError, BotoCoreError) as exc:
        report_error(exc)
        raise SystemExit(1) from exc

    table = Table(title=f"Deployment resources ({env_name})", header_style="bold cyan")
    table.add_column("Resource", style="white", no_wrap=True)
    table.add_column("Status", style="white", no_wrap=True)
    for name, value in results.items():
        table.add_row(name, _style_status(value))
    console.print(table)


@cli.command()
@click.option("--env", "env_name", default=None, help="Environment name (default: ENV_NAME).")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def destroy(env_name: str | None, yes: bool) -> None:
    """Tear down every resource of a deployed environment."""
    env_name = env_name or _default_env_name()
    state = _require_state(env_name)
    if not yes and not click.confirm(f"Delete every resource of '{env_name}'?"):
        console.print("[yellow]Teardown cancelled.[/yellow]")
        return

    try:
        session = create_session(state.aws_region, state.aws_profile)
        destroy_topology(session, state.resources, report_step)
    except (ClientError, BotoCoreError) as exc:
        report_error(exc)
        raise SystemExit(1) from exc

    clear_state(env_name)
    console.print(f"[green]Environment '{env_name}' removed.[/green]")


def _default_env_name() -> str:
    _, settings = get_settings()
    return settings.env_name


def _require_state(env_name: str) -> DeploymentState:
    try:
        state = load_state(env_name)
    except StateError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc
    if state is None:
        console.print(f"[yellow]No deployment recorded for '{env_name}'.[/yellow]")
        raise SystemExit(1)
    return state


def _style_status(value: str) -> str:
    if value.startswith("present"):
        return f"[green]{value}[/green]"
    if value == "not set":
        return f"[dim]{value}[/dim]"
    return f"[red]{value}[/red]"


def main() -> None:
    """Run the CLI."""
    cli()
