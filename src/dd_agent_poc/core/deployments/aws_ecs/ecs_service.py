"""ECS cluster, task definition and Fargate service."""

from collections.abc import Callable
from typing import Any, cast

from botocore.exceptions import ClientError

from dd_agent_poc.core.deployments.aws_ecs.errors import InvalidWorkloadSpecError
from dd_agent_poc.core.deployments.aws_ecs.iam import ensure_execution_role
from dd_agent_poc.core.deployments.aws_ecs.models import (
    ComputeService,
    NetworkTopology,
    SecurityBoundary,
    WorkloadSpec,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import ResourceKind, resource_name

LOG_STREAM_PREFIX = "demo-app"
CONTAINER_HEALTH_CHECK_INTERVAL_SECONDS = 30
CONTAINER_HEALTH_CHECK_TIMEOUT_SECONDS = 5
CONTAINER_HEALTH_CHECK_RETRIES = 3


def validate_workload(workload: WorkloadSpec | None) -> WorkloadSpec:
    """Check the workload spec before anything is created.

    Args:
        workload: Container spec supplied by the packaging step.

    Returns:
        The same workload, for chaining.

    Raises:
        InvalidWorkloadSpecError: If the spec is missing or incomplete.
    """
    if workload is None:
        raise InvalidWorkloadSpecError("A workload spec is required.")
    if not workload.image_reference.strip():
        raise InvalidWorkloadSpecError("Workload image reference must not be empty.")
    if not 1 <= workload.container_port <= 65535:
        raise InvalidWorkloadSpecError(
            f"Workload container port {workload.container_port} is outside 1-65535."
        )
    if not workload.health_check_command:
        raise InvalidWorkloadSpecError("Workload health-check command must not be empty.")
    if workload.start_period_seconds < 0:
        raise InvalidWorkloadSpecError("Workload health-check start period cannot be negative.")
    if not workload.container_name.strip():
        raise InvalidWorkloadSpecError("Workload container name must not be empty.")
    return workload


def ensure_log_group(session: Any, log_group_name: str) -> None:
    """Ensure a CloudWatch log group exists."""
    logs = session.client("logs")
    try:
        logs.create_log_group(logGroupName=log_group_name)
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code != "ResourceAlreadyExistsException":
            raise


def create_cluster(session: Any, cluster_name: str) -> str:
    """Create an ECS cluster with Container Insights, reusing an active one."""
    ecs = session.client("ecs")
    response = ecs.describe_clusters(clusters=[cluster_name])
    clusters = response.get("clusters", [])
    if clusters:
        cluster = clusters[0]
        status = str(cluster.get("status", ""))
        if status == "ACTIVE":
            return cast(str, cluster["clusterArn"])
        if status != "INACTIVE":
            raise RuntimeError(
                f"ECS cluster {cluster_name} is in unexpected status {status} and cannot be used."
            )

    response = ecs.create_cluster(
        clusterName=cluster_name,
        settings=[{"name": "containerInsights", "value": "enabled"}],
    )
    return cast(str, response["cluster"]["clusterArn"])


def container_definition(
    workload: WorkloadSpec,
    log_group_name: str,
    region: str,
) -> dict[str, Any]:
    """Build the ECS container definition for the workload.

    The health check is part of the readiness contract: ECS does not report a
    task healthy until the command passes after the start period.
    """
    return {
        "name": workload.container_name,
        "image": workload.image_reference,
        "essential": True,
        "portMappings": [
            {"containerPort": workload.container_port, "protocol": "tcp"},
        ],
        "healthCheck": {
            "command": list(workload.health_check_command),
            "interval": CONTAINER_HEALTH_CHECK_INTERVAL_SECONDS,
            "timeout": CONTAINER_HEALTH_CHECK_TIMEOUT_SECONDS,
            "retries": CONTAINER_HEALTH_CHECK_RETRIES,
            "startPeriod": workload.start_period_seconds,
        },
        "logConfiguration": {
            "logDriver": "awslogs",
            "options": {
                "awslogs-group": log_group_name,
                "awslogs-region": region,
                "awslogs-stream-prefix": LOG_STREAM_PREFIX,
            },
        },
    }


def register_task_definition(
    session: Any,
    family: str,
    workload: WorkloadSpec,
    execution_role_arn: str,
    log_group_name: str,
    cpu: int,
    memory: int,
) -> str:
    """Register the Fargate task definition for the workload."""
    ecs = session.client("ecs")
    response = ecs.register_task_definition(
        family=family,
        networkMode="awsvpc",
        requiresCompatibilities=["FARGATE"],
        cpu=str(cpu),
        memory=str(memory),
        executionRoleArn=execution_role_arn,
        containerDefinitions=[
            container_definition(workload, log_group_name, str(session.region_name))
        ],
    )
    return cast(str, response["taskDefinition"]["taskDefinitionArn"])


def create_compute_service(
    session: Any,
    network: NetworkTopology,
    security: SecurityBoundary,
    workload: WorkloadSpec,
    env_name: str,
    reporter: Callable[[str], None],
    desired_count: int = 1,
    cpu: int = 256,
    memory: int = 512,
) -> ComputeService:
    """Create the cluster and a Fargate service running the workload.

    Tasks run in the private subnets behind the service security group and
    never receive public IPs.
    """
    validate_workload(workload)
    if desired_count < 0:
        raise InvalidWorkloadSpecError("Desired count cannot be negative.")

    log_group_name = resource_name(ResourceKind.LOG_GROUP, env_name)
    role_name = resource_name(ResourceKind.EXECUTION_ROLE, env_name)
    cluster_name = resource_name(ResourceKind.CLUSTER, env_name)
    family = resource_name(ResourceKind.TASK_FAMILY, env_name)
    service_name = resource_name(ResourceKind.SERVICE, env_name)

    reporter(f"Ensuring CloudWatch log group {log_group_name}")
    ensure_log_group(session, log_group_name)
    execution_role_arn = ensure_execution_role(session, role_name, reporter)

    reporter(f"Creating ECS cluster {cluster_name}")
    cluster_arn = create_cluster(session, cluster_name)

    reporter(f"Registering task definition {family}")
    task_definition_arn = register_task_definition(
        session,
        family,
        workload,
        execution_role_arn,
        log_group_name,
        cpu,
        memory,
    )

    reporter(f"Creating Fargate service {service_name}")
    ecs = session.client("ecs")
    response = ecs.create_service(
        cluster=cluster_name,
        serviceName=service_name,
        taskDefinition=task_definition_arn,
        desiredCount=desired_count,
        launchType="FARGATE",
        networkConfiguration={
            "awsvpcConfiguration": {
                "subnets": network.private_subnet_ids,
                "securityGroups": [security.service.group_id],
                "assignPublicIp": "DISABLED",
            }
        },
        tags=[{"key": "Environment", "value": env_name}],
    )

    return ComputeService(
        cluster_name=cluster_name,
        cluster_arn=cluster_arn,
        service_name=service_name,
        service_arn=cast(str, response["service"]["serviceArn"]),
        task_definition_arn=task_definition_arn,
        task_family=family,
        container_name=workload.container_name,
        container_port=workload.container_port,
        desired_count=desired_count,
        security_group_id=security.service.group_id,
        subnet_ids=list(network.private_subnet_ids),
        log_group_name=log_group_name,
        execution_role_arn=execution_role_arn,
        execution_role_name=role_name,
    )
