"""Assemble the full topology in dependency order."""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from dd_agent_poc.core.deployments.aws_ecs.autoscaling import (
    create_scaling_policy,
    validate_scaling_bounds,
)
from dd_agent_poc.core.deployments.aws_ecs.ecs_service import (
    create_compute_service,
    validate_workload,
)
from dd_agent_poc.core.deployments.aws_ecs.errors import (
    InvalidEnvironmentError,
    InvalidWorkloadSpecError,
    StageFailureError,
    TopologyError,
)
from dd_agent_poc.core.deployments.aws_ecs.load_balancer import (
    create_load_balancing,
    validate_health_check,
)
from dd_agent_poc.core.deployments.aws_ecs.models import (
    EnvironmentConfig,
    Topology,
    TopologyOptions,
    TopologyOutputs,
    WorkloadSpec,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import validate_environment_name
from dd_agent_poc.core.deployments.aws_ecs.network import create_network, plan_network
from dd_agent_poc.core.deployments.aws_ecs.security_groups import (
    create_security_boundary,
    validate_port,
)

logger = logging.getLogger(__name__)

STAGE_CONFIG = "config"
STAGE_NETWORK = "network"
STAGE_SECURITY = "security"
STAGE_COMPUTE = "compute"
STAGE_LOAD_BALANCING = "load_balancing"
STAGE_AUTOSCALING = "autoscaling"

STAGES = (
    STAGE_NETWORK,
    STAGE_SECURITY,
    STAGE_COMPUTE,
    STAGE_LOAD_BALANCING,
    STAGE_AUTOSCALING,
)

T = TypeVar("T")


def _silent(_: str) -> None:
    """Discard progress messages."""


def _run_stage(stage: str, action: Callable[[], T]) -> T:
    """Run one stage, tagging any failure with the stage name."""
    logger.info(f"Starting stage: {stage}")
    try:
        result = action()
    except TopologyError as exc:
        exc.stage = exc.stage or stage
        raise
    except (ClientError, BotoCoreError, RuntimeError, ValueError, LookupError) as exc:
        logger.error(f"Stage {stage} failed: {exc}")
        raise StageFailureError(stage, exc) from exc
    logger.info(f"Finished stage: {stage}")
    return result


def validate_inputs(
    config: EnvironmentConfig,
    workload: WorkloadSpec | None,
    options: TopologyOptions,
    session_region: str | None = None,
) -> WorkloadSpec:
    """Run every builder's input checks without touching AWS.

    Checks run in stage order so the first failure names the earliest stage.

    Returns:
        The checked workload.
    """
    _run_stage(STAGE_CONFIG, lambda: validate_environment_name(config.environment_name))
    _run_stage(STAGE_CONFIG, lambda: _validate_region(config.region, session_region))
    _run_stage(
        STAGE_NETWORK,
        lambda: plan_network(
            options.vpc_cidr,
            options.availability_zone_count,
            options.subnet_cidr_mask,
            options.nat_gateway_count,
        ),
    )
    _run_stage(STAGE_SECURITY, lambda: validate_port(options.published_port))
    checked = _run_stage(STAGE_COMPUTE, lambda: _validate_compute(workload, options))
    _run_stage(STAGE_LOAD_BALANCING, lambda: validate_health_check(options.health_check))
    _run_stage(STAGE_AUTOSCALING, lambda: validate_scaling_bounds(config))
    return checked


def _validate_region(region: str | None, session_region: str | None) -> None:
    if region and session_region and region != session_region:
        raise InvalidEnvironmentError(
            f"Environment region {region} does not match the session region {session_region}."
        )


def _validate_compute(workload: WorkloadSpec | None, options: TopologyOptions) -> WorkloadSpec:
    checked = validate_workload(workload)
    if checked.container_port != options.published_port:
        raise InvalidWorkloadSpecError(
            f"Workload container port {checked.container_port} must match the published "
            f"port {options.published_port} allowed by the service security group."
        )
    return checked


def build_topology(
    session: Any,
    config: EnvironmentConfig,
    workload: WorkloadSpec | None,
    options: TopologyOptions | None = None,
    reporter: Callable[[str], None] = _silent,
) -> Topology:
    """Validate inputs, then create every resource of one environment.

    Args:
        session: Provisioning session (a boto3 ``Session`` or compatible fake).
        config: Environment name and scaling parameters.
        workload: Application container to run.
        options: Network, port and health-check tunables.
        reporter: Progress callback.

    Returns:
        The created topology.

    Raises:
        TopologyError: The first failing stage. No later stage runs.
    """
    options = options or TopologyOptions()
    checked_workload = validate_inputs(
        config, workload, options, getattr(session, "region_name", None)
    )
    env_name = config.environment_name
    logger.info(f"Assembling topology for environment {env_name}")

    plan = plan_network(
        options.vpc_cidr,
        options.availability_zone_count,
        options.subnet_cidr_mask,
        options.nat_gateway_count,
    )
    network = _run_stage(
        STAGE_NETWORK, lambda: create_network(session, plan, env_name, reporter)
    )
    security = _run_stage(
        STAGE_SECURITY,
        lambda: create_security_boundary(
            session, network, env_name, options.published_port, reporter
        ),
    )
    compute = _run_stage(
        STAGE_COMPUTE,
        lambda: create_compute_service(
            session,
            network,
            security,
            checked_workload,
            env_name,
            reporter,
            desired_count=options.desired_count,
            cpu=options.task_cpu,
            memory=options.task_memory,
        ),
    )
    load_balancer, target_group = _run_stage(
        STAGE_LOAD_BALANCING,
        lambda: create_load_balancing(
            session, network, security, compute, env_name, reporter, options.health_check
        ),
    )
    scaling_policy = _run_stage(
        STAGE_AUTOSCALING,
        lambda: create_scaling_policy(
            session,
            compute,
            load_balancer,
            target_group,
            config,
            reporter,
            scale_in_cooldown_seconds=options.scale_in_cooldown_seconds,
            scale_out_cooldown_seconds=options.scale_out_cooldown_seconds,
        ),
    )

    return Topology(
        environment_name=env_name,
        network=network,
        security=security,
        compute=compute,
        target_group=target_group,
        load_balancer=load_balancer,
        scaling_policy=scaling_policy,
    )


def assemble_topology(
    session: Any,
    config: EnvironmentConfig,
    workload: WorkloadSpec | None,
    options: TopologyOptions | None = None,
    reporter: Callable[[str], None] = _silent,
) -> TopologyOutputs:
    """Assemble one environment and return its public identifiers."""
    return build_topology(session, config, workload, options, reporter).outputs()
