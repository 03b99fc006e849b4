"""dd-agent-poc - Fargate topology for a sidecar-instrumented service."""

from dd_agent_poc.core.deployments.aws_ecs import (
    EnvironmentConfig,
    TopologyOutputs,
    WorkloadSpec,
    assemble_topology,
)

__all__ = [
    "EnvironmentConfig",
    "TopologyOutputs",
    "WorkloadSpec",
    "assemble_topology",
]
