"""Application load balancer, target group and listener."""

from collections.abc import Callable
from typing import Any, cast

from dd_agent_poc.core.deployments.aws_ecs.errors import InvalidHealthCheckError
from dd_agent_poc.core.deployments.aws_ecs.models import (
    ComputeService,
    HealthCheckPolicy,
    Listener,
    LoadBalancer,
    NetworkTopology,
    SecurityBoundary,
    TargetGroup,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import ResourceKind, resource_name

INTERNET_FACING = "internet-facing"
HTTP = "HTTP"


def validate_health_check(policy: HealthCheckPolicy) -> HealthCheckPolicy:
    """Check a health-check policy against ELBv2 limits."""
    if not policy.path.startswith("/"):
        raise InvalidHealthCheckError(f"Health-check path '{policy.path}' must start with '/'.")
    if not 5 <= policy.interval_seconds <= 300:
        raise InvalidHealthCheckError("Health-check interval must be between 5 and 300 seconds.")
    if not 2 <= policy.timeout_seconds <= 120:
        raise InvalidHealthCheckError("Health-check timeout must be between 2 and 120 seconds.")
    if policy.timeout_seconds >= policy.interval_seconds:
        raise InvalidHealthCheckError("Health-check timeout must be shorter than the interval.")
    for label, value in (
        ("healthy", policy.healthy_threshold),
        ("unhealthy", policy.unhealthy_threshold),
    ):
        if not 2 <= value <= 10:
            raise InvalidHealthCheckError(f"The {label} threshold must be between 2 and 10.")
    return policy


def create_target_group(
    session: Any,
    network: NetworkTopology,
    env_name: str,
    port: int,
    policy: HealthCheckPolicy,
) -> TargetGroup:
    """Create an IP target group so ECS can register task addresses at runtime."""
    elbv2 = session.client("elbv2")
    name = resource_name(ResourceKind.TARGET_GROUP, env_name)
    response = elbv2.create_target_group(
        Name=name,
        Protocol=HTTP,
        Port=port,
        VpcId=network.vpc_id,
        TargetType="ip",
        HealthCheckProtocol=HTTP,
        HealthCheckPath=policy.path,
        HealthCheckIntervalSeconds=policy.interval_seconds,
        HealthCheckTimeoutSeconds=policy.timeout_seconds,
        HealthyThresholdCount=policy.healthy_threshold,
        UnhealthyThresholdCount=policy.unhealthy_threshold,
        Tags=[{"Key": "Environment", "Value": env_name}],
    )
    arn = cast(str, response["TargetGroups"][0]["TargetGroupArn"])
    return TargetGroup(arn=arn, name=name, port=port, health_check=policy)


def create_load_balancer(
    session: Any,
    network: NetworkTopology,
    security: SecurityBoundary,
    env_name: str,
) -> LoadBalancer:
    """Create an internet-facing ALB in the public subnets."""
    elbv2 = session.client("elbv2")
    name = resource_name(ResourceKind.LOAD_BALANCER, env_name)
    response = elbv2.create_load_balancer(
        Name=name,
        Subnets=network.public_subnet_ids,
        SecurityGroups=[security.edge.group_id],
        Scheme=INTERNET_FACING,
        Type="application",
        IpAddressType="ipv4",
        Tags=[{"Key": "Environment", "Value": env_name}],
    )
    balancer = response["LoadBalancers"][0]
    return LoadBalancer(
        arn=cast(str, balancer["LoadBalancerArn"]),
        name=name,
        dns_name=cast(str, balancer["DNSName"]),
        scheme=INTERNET_FACING,
        subnet_ids=list(network.public_subnet_ids),
        security_group_id=security.edge.group_id,
    )


def add_forward_listener(
    session: Any,
    load_balancer: LoadBalancer,
    target_group: TargetGroup,
    port: int,
) -> Listener:
    """Forward all traffic on a port to a single target group."""
    elbv2 = session.client("elbv2")
    response = elbv2.create_listener(
        LoadBalancerArn=load_balancer.arn,
        Protocol=HTTP,
        Port=port,
        DefaultActions=[
            {
                "Type": "forward",
                "ForwardConfig": {
                    "TargetGroups": [{"TargetGroupArn": target_group.arn, "Weight": 1}],
                },
            }
        ],
    )
    listener = Listener(
        arn=cast(str, response["Listeners"][0]["ListenerArn"]),
        port=port,
        protocol=HTTP,
        target_group_arn=target_group.arn,
    )
    load_balancer.listeners.append(listener)
    return listener


def attach_service(session: Any, compute: ComputeService, target_group: TargetGroup) -> None:
    """Make the ECS service the sole member of the target group."""
    if target_group.members:
        raise RuntimeError(
            f"Target group {target_group.name} already has member {target_group.members[0]}."
        )
    ecs = session.client("ecs")
    ecs.update_service(
        cluster=compute.cluster_name,
        service=compute.service_name,
        loadBalancers=[
            {
                "targetGroupArn": target_group.arn,
                "containerName": compute.container_name,
                "containerPort": compute.container_port,
            }
        ],
    )
    target_group.members.append(compute.service_name)


def create_load_balancing(
    session: Any,
    network: NetworkTopology,
    security: SecurityBoundary,
    compute: ComputeService,
    env_name: str,
    reporter: Callable[[str], None],
    policy: HealthCheckPolicy | None = None,
) -> tuple[LoadBalancer, TargetGroup]:
    """Create the ALB path in front of the compute service.

    Returns:
        The load balancer and the target group holding the service.
    """
    policy = validate_health_check(policy or HealthCheckPolicy())

    reporter("Creating target group")
    target_group = create_target_group(
        session, network, env_name, compute.container_port, policy
    )

    reporter("Creating application load balancer")
    load_balancer = create_load_balancer(session, network, security, env_name)

    reporter(f"Adding {HTTP} listener on port {security.published_port}")
    add_forward_listener(session, load_balancer, target_group, security.published_port)

    reporter(f"Attaching {compute.service_name} to the target group")
    attach_service(session, compute, target_group)

    return load_balancer, target_group
