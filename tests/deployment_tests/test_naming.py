"""Tests for environment scoped resource names."""

import pytest

from dd_agent_poc.core.deployments.aws_ecs import InvalidEnvironmentError, ResourceKind
from dd_agent_poc.core.deployments.aws_ecs.naming import (
    indexed_name,
    resource_name,
    validate_environment_name,
)


@pytest.mark.parametrize("env_name", ["dev", "staging", "prod", "pr-1234", "a"])
def test_names_are_distinct_across_kinds(env_name: str) -> None:
    """No two kinds share a name within one environment."""
    names = [resource_name(kind, env_name) for kind in ResourceKind]

    assert len(set(names)) == len(list(ResourceKind))


def test_indexed_names_do_not_collide_with_plain_names() -> None:
    """Per-zone names stay distinct from every plain name."""
    plain = {resource_name(kind, "dev") for kind in ResourceKind}
    indexed = {indexed_name(kind, "dev", index) for kind in ResourceKind for index in (1, 2, 3)}

    assert plain.isdisjoint(indexed)
    assert len(indexed) == len(list(ResourceKind)) * 3


def test_names_are_stable_and_environment_scoped() -> None:
    """The same inputs always give the same name; environments never share one."""
    assert resource_name(ResourceKind.CLUSTER, "dev") == "dd-agent-cluster-dev"
    assert resource_name(ResourceKind.SERVICE, "dev") == "dd-agent-service-dev"
    assert resource_name(ResourceKind.LOAD_BALANCER, "dev") == "dd-agent-alb-dev"
    assert resource_name(ResourceKind.TASK_FAMILY, "dev") == "dd-agent-poc-task-dev"
    assert resource_name(ResourceKind.CLUSTER, "dev") == resource_name(ResourceKind.CLUSTER, "dev")
    assert resource_name(ResourceKind.CLUSTER, "dev") != resource_name(
        ResourceKind.CLUSTER, "staging"
    )


@pytest.mark.parametrize("env_name", ["", "-dev", "dev-", "dev_1", "dev env", "dév"])
def test_invalid_environment_names_are_rejected(env_name: str) -> None:
    """Names that AWS would refuse somewhere are caught up front."""
    with pytest.raises(InvalidEnvironmentError):
        validate_environment_name(env_name)


def test_environment_name_too_long_for_load_balancer() -> None:
    """ALB and target group names are limited to 32 characters."""
    validate_environment_name("x" * 19)

    with pytest.raises(InvalidEnvironmentError, match="exceeds 32"):
        validate_environment_name("x" * 20)
