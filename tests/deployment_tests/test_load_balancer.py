"""Tests for the load balancing builder."""

import pytest

from dd_agent_poc.core.deployments.aws_ecs import (
    HealthCheckPolicy,
    InvalidHealthCheckError,
    create_compute_service,
    create_load_balancing,
    create_network,
    create_security_boundary,
    plan_network,
)
from dd_agent_poc.core.deployments.aws_ecs.load_balancer import (
    attach_service,
    validate_health_check,
)


@pytest.fixture
def stack(fake_session, workload, messages):
    network = create_network(fake_session, plan_network(), "dev", messages.append)
    security = create_security_boundary(fake_session, network, "dev", 80, messages.append)
    compute = create_compute_service(
        fake_session, network, security, workload, "dev", messages.append
    )
    fake_session.calls.clear()
    return network, security, compute


def test_internet_facing_alb_in_public_subnets(fake_session, stack, messages) -> None:
    """The ALB uses the public subnets and the edge group."""
    network, security, compute = stack

    balancer, _ = create_load_balancing(
        fake_session, network, security, compute, "dev", messages.append
    )

    (call,) = fake_session.calls_to("elbv2", "create_load_balancer")
    assert call["Name"] == "dd-agent-alb-dev"
    assert call["Scheme"] == "internet-facing"
    assert call["Subnets"] == network.public_subnet_ids
    assert call["SecurityGroups"] == [security.edge.group_id]
    assert balancer.scheme == "internet-facing"
    assert balancer.dns_name.startswith("dd-agent-alb-dev-")


def test_target_group_uses_default_health_check(fake_session, stack, messages) -> None:
    """Targets are IP based with the /health policy."""
    network, security, compute = stack

    _, target_group = create_load_balancing(
        fake_session, network, security, compute, "dev", messages.append
    )

    (call,) = fake_session.calls_to("elbv2", "create_target_group")
    assert call["TargetType"] == "ip"
    assert call["VpcId"] == network.vpc_id
    assert call["Port"] == compute.container_port
    assert call["HealthCheckPath"] == "/health"
    assert call["HealthCheckIntervalSeconds"] == 30
    assert call["HealthCheckTimeoutSeconds"] == 5
    assert call["HealthyThresholdCount"] == 2
    assert call["UnhealthyThresholdCount"] == 2
    assert "Targets" not in call
    assert fake_session.calls_to("elbv2", "register_targets") == []
    assert target_group.members == [compute.service_name]


def test_single_listener_forwards_everything(fake_session, stack, messages) -> None:
    """One listener on the published port forwards to the target group."""
    network, security, compute = stack

    balancer, target_group = create_load_balancing(
        fake_session, network, security, compute, "dev", messages.append
    )

    (call,) = fake_session.calls_to("elbv2", "create_listener")
    assert call["Port"] == 80
    assert call["Protocol"] == "HTTP"
    (action,) = call["DefaultActions"]
    assert action["Type"] == "forward"
    assert action["ForwardConfig"]["TargetGroups"] == [
        {"TargetGroupArn": target_group.arn, "Weight": 1}
    ]
    assert [listener.target_group_arn for listener in balancer.listeners] == [target_group.arn]


def test_service_is_attached_after_listener(fake_session, stack, messages) -> None:
    """ECS registers tasks only once the target group has a listener."""
    network, security, compute = stack

    _, target_group = create_load_balancing(
        fake_session, network, security, compute, "dev", messages.append
    )

    operations = [call.operation for call in fake_session.calls]
    assert operations.index("create_listener") < operations.index("update_service")
    (update,) = fake_session.calls_to("ecs", "update_service")
    assert update["service"] == compute.service_name
    assert update["loadBalancers"] == [
        {
            "targetGroupArn": target_group.arn,
            "containerName": "app",
            "containerPort": 80,
        }
    ]


def test_target_group_accepts_only_one_member(fake_session, stack, messages) -> None:
    """A second attachment is refused."""
    network, security, compute = stack
    _, target_group = create_load_balancing(
        fake_session, network, security, compute, "dev", messages.append
    )

    with pytest.raises(RuntimeError, match="already has member"):
        attach_service(fake_session, compute, target_group)


@pytest.mark.parametrize(
    "policy",
    [
        HealthCheckPolicy(path="health"),
        HealthCheckPolicy(interval_seconds=4),
        HealthCheckPolicy(timeout_seconds=30, interval_seconds=30),
        HealthCheckPolicy(healthy_threshold=1),
        HealthCheckPolicy(unhealthy_threshold=11),
    ],
)
def test_inconsistent_health_checks_are_rejected(policy: HealthCheckPolicy) -> None:
    """Health-check settings are validated against ELBv2 limits."""
    with pytest.raises(InvalidHealthCheckError):
        validate_health_check(policy)
