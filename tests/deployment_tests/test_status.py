"""Tests for deployment status checks."""

import pytest
from botocore.exceptions import ClientError

from dd_agent_poc.core.deployments.aws_ecs import (
    DeploymentRecord,
    build_topology,
    check_topology,
)


@pytest.fixture
def record(session_factory, env_config, workload) -> DeploymentRecord:
    return DeploymentRecord.from_topology(build_topology(session_factory(), env_config, workload))


def _healthy(session, record: DeploymentRecord) -> None:
    session.responses.update(
        {
            ("ec2", "describe_vpcs"): {"Vpcs": [{"VpcId": record.vpc_id, "State": "available"}]},
            ("ec2", "describe_subnets"): {
                "Subnets": [{"SubnetId": subnet_id} for subnet_id in record.subnet_ids]
            },
            ("ecs", "describe_clusters"): {"clusters": [{"status": "ACTIVE"}]},
            ("ecs", "describe_services"): {
                "services": [{"status": "ACTIVE", "runningCount": 1, "desiredCount": 2}]
            },
            ("elbv2", "describe_load_balancers"): {
                "LoadBalancers": [{"State": {"Code": "active"}}]
            },
            ("application-autoscaling", "describe_scaling_policies"): {
                "ScalingPolicies": [{"PolicyName": record.scaling_policy_name}]
            },
        }
    )


def test_healthy_deployment_reports_present(fake_session, record) -> None:
    _healthy(fake_session, record)

    results = check_topology(fake_session, record)

    assert results["ECS service"] == "present (1/2 running)"
    assert {name: value for name, value in results.items() if name != "ECS service"} == {
        "VPC": "present",
        "Subnets": "present",
        "Security groups": "present",
        "ECS cluster": "present",
        "Target group": "present",
        "Load balancer": "present",
        "Scaling policy": "present",
    }


def test_missing_resources_are_reported(fake_session, record) -> None:
    _healthy(fake_session, record)
    fake_session.failures[("ec2", "describe_vpcs")] = ClientError(
        {"Error": {"Code": "InvalidVpcID.NotFound", "Message": "gone"}}, "DescribeVpcs"
    )
    fake_session.responses[("ec2", "describe_subnets")] = {
        "Subnets": [{"SubnetId": record.subnet_ids[0]}]
    }
    fake_session.responses[("ecs", "describe_clusters")] = {"clusters": []}

    results = check_topology(fake_session, record)

    assert results["VPC"] == "missing"
    assert results["Subnets"] == f"missing {len(record.subnet_ids) - 1}/{len(record.subnet_ids)}"
    assert results["ECS cluster"] == "missing"


def test_unexpected_errors_surface_their_code(fake_session, record) -> None:
    _healthy(fake_session, record)
    fake_session.fail("elbv2", "describe_target_groups", "Throttling")

    assert check_topology(fake_session, record)["Target group"] == "error: Throttling"


def test_unset_resources_are_not_queried(fake_session) -> None:
    results = check_topology(fake_session, DeploymentRecord(environment_name="dev"))

    assert set(results.values()) == {"not set"}
    assert fake_session.calls == []
