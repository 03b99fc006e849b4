"""Environment scoped resource names."""

import re
from enum import Enum

from dd_agent_poc.core.deployments.aws_ecs.errors import InvalidEnvironmentError

NAME_PREFIX = "dd-agent"

# ALB and target group names are limited to 32 characters by ELBv2.
ELB_NAME_MAX_LENGTH = 32

_ENV_NAME_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")


class ResourceKind(Enum):
    """Every kind of named resource in one topology."""

    VPC = "vpc"
    INTERNET_GATEWAY = "igw"
    PUBLIC_SUBNET = "public"
    PRIVATE_SUBNET = "private"
    PUBLIC_ROUTE_TABLE = "public-rt"
    PRIVATE_ROUTE_TABLE = "private-rt"
    NAT_GATEWAY = "nat"
    ELASTIC_IP = "eip"
    EDGE_SECURITY_GROUP = "alb-sg"
    SERVICE_SECURITY_GROUP = "service-sg"
    CLUSTER = "cluster"
    TASK_FAMILY = "poc-task"
    SERVICE = "service"
    LOG_GROUP = "logs"
    EXECUTION_ROLE = "task-execution"
    TARGET_GROUP = "tg"
    LOAD_BALANCER = "alb"
    SCALING_POLICY = "request-scaling"


def resource_name(kind: ResourceKind, env_name: str) -> str:
    """Return the name of a resource for an environment."""
    return f"{NAME_PREFIX}-{kind.value}-{env_name}"


def indexed_name(kind: ResourceKind, env_name: str, index: int) -> str:
    """Return the name of a per-zone resource."""
    return f"{resource_name(kind, env_name)}-{index}"


def validate_environment_name(env_name: str) -> None:
    """Ensure an environment name is usable in every resource name.

    Args:
        env_name: Environment name used verbatim in names.

    Raises:
        InvalidEnvironmentError: If the name is empty, has unsupported
            characters, or makes an ELB name too long.
    """
    if not env_name:
        raise InvalidEnvironmentError("Environment name must not be empty.")
    if not _ENV_NAME_PATTERN.match(env_name):
        raise InvalidEnvironmentError(
            f"Environment name '{env_name}' may only contain letters, digits and '-', "
            "and must start and end with a letter or digit."
        )
    for kind in (ResourceKind.LOAD_BALANCER, ResourceKind.TARGET_GROUP):
        name = resource_name(kind, env_name)
        if len(name) > ELB_NAME_MAX_LENGTH:
            raise InvalidEnvironmentError(
                f"Environment name '{env_name}' is too long: '{name}' exceeds "
                f"{ELB_NAME_MAX_LENGTH} characters."
            )
