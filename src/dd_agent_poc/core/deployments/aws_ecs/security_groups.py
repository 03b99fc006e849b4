"""Edge and service security groups."""

from collections.abc import Callable
from typing import Any

from dd_agent_poc.core.deployments.aws_ecs.errors import InvalidPortError
from dd_agent_poc.core.deployments.aws_ecs.models import (
    ANY_IPV4,
    IngressRule,
    NetworkTopology,
    SecurityBoundary,
    SecurityGroupInfo,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import ResourceKind, resource_name


def validate_port(port: int) -> None:
    """Ensure a port is a valid TCP port."""
    if not 1 <= port <= 65535:
        raise InvalidPortError(f"Port {port} is outside the TCP range 1-65535.")


def create_security_group(
    session: Any,
    vpc_id: str,
    name: str,
    description: str,
    env_name: str,
) -> SecurityGroupInfo:
    """Create a security group with default outbound access."""
    ec2 = session.client("ec2")
    response = ec2.create_security_group(
        VpcId=vpc_id,
        GroupName=name,
        Description=description,
    )
    group_id = response["GroupId"]
    ec2.create_tags(
        Resources=[group_id],
        Tags=[
            {"Key": "Name", "Value": name},
            {"Key": "Environment", "Value": env_name},
        ],
    )

    return SecurityGroupInfo(group_id=group_id, name=name, description=description)


def authorize_ingress(session: Any, rule: IngressRule) -> IngressRule:
    """Add an inbound rule from either a CIDR range or another group."""
    if (rule.source_cidr is None) == (rule.source_group_id is None):
        raise ValueError("An ingress rule needs exactly one of source_cidr or source_group_id.")

    permission: dict[str, Any] = {
        "IpProtocol": rule.protocol,
        "FromPort": rule.port,
        "ToPort": rule.port,
    }
    if rule.source_cidr is not None:
        permission["IpRanges"] = [{"CidrIp": rule.source_cidr, "Description": rule.description}]
    else:
        permission["UserIdGroupPairs"] = [
            {"GroupId": rule.source_group_id, "Description": rule.description}
        ]

    ec2 = session.client("ec2")
    ec2.authorize_security_group_ingress(GroupId=rule.group_id, IpPermissions=[permission])
    return rule


def create_security_boundary(
    session: Any,
    network: NetworkTopology,
    env_name: str,
    published_port: int,
    reporter: Callable[[str], None],
) -> SecurityBoundary:
    """Create the edge and service groups and wire trust between them.

    The edge group accepts the published port from anywhere. The service group
    accepts the same port only from members of the edge group.
    """
    validate_port(published_port)

    reporter("Creating load balancer security group")
    edge = create_security_group(
        session,
        network.vpc_id,
        resource_name(ResourceKind.EDGE_SECURITY_GROUP, env_name),
        "SG for ALB",
        env_name,
    )
    edge_rule = authorize_ingress(
        session,
        IngressRule(
            group_id=edge.group_id,
            port=published_port,
            description="Allow HTTP from internet",
            source_cidr=ANY_IPV4,
        ),
    )

    reporter("Creating service security group")
    service = create_security_group(
        session,
        network.vpc_id,
        resource_name(ResourceKind.SERVICE_SECURITY_GROUP, env_name),
        "SG for Fargate service",
        env_name,
    )
    service_rule = authorize_ingress(
        session,
        IngressRule(
            group_id=service.group_id,
            port=published_port,
            description="Allow ALB to app",
            source_group_id=edge.group_id,
        ),
    )

    return SecurityBoundary(
        edge=edge,
        service=service,
        published_port=published_port,
        rules=[edge_rule, service_rule],
    )
