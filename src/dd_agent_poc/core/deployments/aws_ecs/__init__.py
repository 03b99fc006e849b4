"""AWS ECS topology assembly."""

from dd_agent_poc.core.deployments.aws_ecs.assembler import (
    STAGES,
    assemble_topology,
    build_topology,
    validate_inputs,
)
from dd_agent_poc.core.deployments.aws_ecs.autoscaling import (
    ScalingAction,
    TargetTrackingController,
    create_scaling_policy,
)
from dd_agent_poc.core.deployments.aws_ecs.cleanup import destroy_topology
from dd_agent_poc.core.deployments.aws_ecs.ecs_service import create_compute_service
from dd_agent_poc.core.deployments.aws_ecs.errors import (
    CapacityExceededError,
    InvalidEnvironmentError,
    InvalidHealthCheckError,
    InvalidPortError,
    InvalidScalingBoundsError,
    InvalidWorkloadSpecError,
    StageFailureError,
    TopologyError,
)
from dd_agent_poc.core.deployments.aws_ecs.load_balancer import create_load_balancing
from dd_agent_poc.core.deployments.aws_ecs.models import (
    DeploymentRecord,
    EnvironmentConfig,
    HealthCheckPolicy,
    Topology,
    TopologyOptions,
    TopologyOutputs,
    WorkloadSpec,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import ResourceKind, resource_name
from dd_agent_poc.core.deployments.aws_ecs.network import create_network, plan_network
from dd_agent_poc.core.deployments.aws_ecs.security_groups import create_security_boundary
from dd_agent_poc.core.deployments.aws_ecs.session import create_session, get_identity
from dd_agent_poc.core.deployments.aws_ecs.status import check_topology

__all__ = [
    "STAGES",
    "CapacityExceededError",
    "DeploymentRecord",
    "EnvironmentConfig",
    "HealthCheckPolicy",
    "InvalidEnvironmentError",
    "InvalidHealthCheckError",
    "InvalidPortError",
    "InvalidScalingBoundsError",
    "InvalidWorkloadSpecError",
    "ResourceKind",
    "ScalingAction",
    "StageFailureError",
    "TargetTrackingController",
    "Topology",
    "TopologyError",
    "TopologyOptions",
    "TopologyOutputs",
    "WorkloadSpec",
    "assemble_topology",
    "build_topology",
    "check_topology",
    "create_compute_service",
    "create_load_balancing",
    "create_network",
    "create_scaling_policy",
    "create_security_boundary",
    "create_session",
    "destroy_topology",
    "get_identity",
    "plan_network",
    "resource_name",
    "validate_inputs",
]
