"""Tests for topology teardown."""

import pytest

from dd_agent_poc.core.deployments.aws_ecs import (
    DeploymentRecord,
    build_topology,
    destroy_topology,
)


@pytest.fixture
def record(session_factory, env_config, workload) -> DeploymentRecord:
    """Identifiers of a freshly assembled dev topology."""
    return DeploymentRecord.from_topology(build_topology(session_factory(), env_config, workload))


def _operations(session) -> list[str]:
    return [call.operation for call in session.calls]


def test_teardown_runs_in_reverse_dependency_order(fake_session, record, messages) -> None:
    """Scaling goes first and the VPC goes last."""
    destroy_topology(fake_session, record, messages.append)
    operations = _operations(fake_session)

    milestones = [
        operations.index("delete_scaling_policy"),
        operations.index("delete_service"),
        operations.index("delete_load_balancer"),
        operations.index("delete_target_group"),
        operations.index("delete_cluster"),
        operations.index("delete_role"),
        operations.index("delete_security_group"),
        operations.index("delete_nat_gateway"),
        operations.index("delete_subnet"),
        operations.index("delete_vpc"),
    ]
    assert milestones == sorted(milestones)
    assert operations[-1] == "delete_vpc"


def test_service_is_drained_before_deletion(fake_session, record, messages) -> None:
    """The service is scaled to zero and awaited."""
    destroy_topology(fake_session, record, messages.append)

    (update,) = fake_session.calls_to("ecs", "update_service")
    assert update["desiredCount"] == 0
    assert fake_session.calls_to("ecs", "delete_service")[0]["force"] is True
    assert "wait:services_inactive" in _operations(fake_session)


def test_service_group_is_deleted_before_edge_group(fake_session, record, messages) -> None:
    """The service group references the edge group."""
    destroy_topology(fake_session, record, messages.append)

    deleted = [call["GroupId"] for call in fake_session.calls_to("ec2", "delete_security_group")]
    assert deleted == [record.service_security_group_id, record.edge_security_group_id]


def test_every_recorded_resource_is_deleted(fake_session, record, messages) -> None:
    destroy_topology(fake_session, record, messages.append)

    assert [c["SubnetId"] for c in fake_session.calls_to("ec2", "delete_subnet")] == (
        record.subnet_ids
    )
    assert [c["RouteTableId"] for c in fake_session.calls_to("ec2", "delete_route_table")] == (
        record.route_table_ids
    )
    assert [c["AllocationId"] for c in fake_session.calls_to("ec2", "release_address")] == (
        record.elastic_ip_allocation_ids
    )
    assert [c["ListenerArn"] for c in fake_session.calls_to("elbv2", "delete_listener")] == (
        record.listener_arns
    )


def test_missing_resources_are_skipped(fake_session, record, messages) -> None:
    """Already deleted resources do not count as failures."""
    fake_session.fail("ecs", "update_service", "ServiceNotFoundException")
    fake_session.fail("ec2", "delete_vpc", "InvalidVpcID.NotFound")

    destroy_topology(fake_session, record, messages.append)

    assert fake_session.calls_to("ecs", "delete_service")
    assert not any(message.startswith("Failed") for message in messages)


def test_failures_are_reported_and_teardown_continues(fake_session, record, messages) -> None:
    fake_session.fail("ec2", "delete_security_group", "DependencyViolation")

    destroy_topology(fake_session, record, messages.append)

    failures = [message for message in messages if message.startswith("Failed")]
    assert len(failures) == 2
    assert all("DependencyViolation" in message for message in failures)
    assert fake_session.calls_to("ec2", "delete_vpc") == [{"VpcId": record.vpc_id}]


def test_partial_record_only_touches_known_resources(fake_session, messages) -> None:
    """A deployment that stopped after the network stage only deletes the network."""
    record = DeploymentRecord(
        environment_name="dev",
        vpc_id="vpc-1",
        internet_gateway_id="igw-1",
        subnet_ids=["subnet-1"],
        route_table_ids=["rtb-1"],
    )

    destroy_topology(fake_session, record, messages.append)

    assert {call.service for call in fake_session.calls} == {"ec2"}
    assert _operations(fake_session) == [
        "detach_internet_gateway",
        "delete_internet_gateway",
        "delete_subnet",
        "delete_route_table",
        "delete_vpc",
    ]
