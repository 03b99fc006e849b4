"""Report which parts of a deployed topology still exist."""

from collections.abc import Callable
from typing import Any

from botocore.exceptions import ClientError

from dd_agent_poc.core.deployments.aws_ecs.autoscaling import SCALABLE_DIMENSION, SERVICE_NAMESPACE
from dd_agent_poc.core.deployments.aws_ecs.models import DeploymentRecord

NOT_SET = "not set"
PRESENT = "present"
MISSING = "missing"


def check_topology(session: Any, record: DeploymentRecord) -> dict[str, str]:
    """Describe every recorded resource and summarise its state.

    Values are ``present``, ``missing``, ``status <state>``, ``error: <code>``
    or ``not set`` when the record holds no identifier for the resource.
    """
    ec2 = session.client("ec2")
    ecs = session.client("ecs")
    elbv2 = session.client("elbv2")
    autoscaling = session.client("application-autoscaling")
    group_ids = [
        group_id
        for group_id in (record.edge_security_group_id, record.service_security_group_id)
        if group_id
    ]

    return {
        "VPC": _probe(
            record.vpc_id,
            lambda: _vpc_state(ec2, record.vpc_id),
            "InvalidVpcID.NotFound",
        ),
        "Subnets": _probe(
            record.subnet_ids,
            lambda: _subnet_state(ec2, record.subnet_ids),
            "InvalidSubnetID.NotFound",
        ),
        "Security groups": _probe(
            group_ids,
            lambda: _exists(ec2.describe_security_groups(GroupIds=group_ids), "SecurityGroups"),
            "InvalidGroup.NotFound",
        ),
        "ECS cluster": _probe(
            record.cluster_name,
            lambda: _cluster_state(ecs, record.cluster_name),
            "ClusterNotFoundException",
        ),
        "ECS service": _probe(
            record.cluster_name and record.service_name,
            lambda: _service_state(ecs, record.cluster_name, record.service_name),
            "ClusterNotFoundException",
        ),
        "Target group": _probe(
            record.target_group_arn,
            lambda: _exists(
                elbv2.describe_target_groups(TargetGroupArns=[record.target_group_arn]),
                "TargetGroups",
            ),
            "TargetGroupNotFound",
        ),
        "Load balancer": _probe(
            record.load_balancer_arn,
            lambda: _load_balancer_state(elbv2, record.load_balancer_arn),
            "LoadBalancerNotFound",
        ),
        "Scaling policy": _probe(
            record.scalable_resource_id and record.scaling_policy_name,
            lambda: _scaling_policy_state(autoscaling, record),
            "ObjectNotFoundException",
        ),
    }


def _probe(identifier: Any, describe: Callable[[], str], missing_code: str) -> str:
    if not identifier:
        return NOT_SET
    try:
        return describe()
    except ClientError as exc:
        code = str(exc.response.get("Error", {}).get("Code", ""))
        return MISSING if code == missing_code else f"error: {code}"


def _exists(response: dict[str, Any], key: str) -> str:
    # Absent keys mean the describe call succeeded without listing items.
    if key in response and not response[key]:
        return MISSING
    return PRESENT


def _state(value: Any, healthy: str) -> str:
    state = str(value or "").lower()
    if state and state != healthy:
        return f"status {state}"
    return PRESENT


def _vpc_state(ec2: Any, vpc_id: str | None) -> str:
    vpcs = ec2.describe_vpcs(VpcIds=[vpc_id]).get("Vpcs", [])
    if not vpcs:
        return MISSING
    return _state(vpcs[0].get("State"), "available")


def _subnet_state(ec2: Any, subnet_ids: list[str]) -> str:
    found = {
        subnet["SubnetId"]
        for subnet in ec2.describe_subnets(SubnetIds=subnet_ids).get("Subnets", [])
    }
    missing = len(set(subnet_ids) - found)
    if missing:
        return f"{MISSING} {missing}/{len(subnet_ids)}"
    return PRESENT


def _cluster_state(ecs: Any, cluster_name: str | None) -> str:
    clusters = ecs.describe_clusters(clusters=[cluster_name]).get("clusters", [])
    if not clusters:
        return MISSING
    return _state(clusters[0].get("status"), "active")


def _service_state(ecs: Any, cluster_name: str | None, service_name: str | None) -> str:
    response = ecs.describe_services(cluster=cluster_name, services=[service_name])
    services = response.get("services", [])
    if not services:
        return MISSING
    service = services[0]
    status = _state(service.get("status"), "active")
    if status != PRESENT:
        return status
    running = service.get("runningCount", 0)
    desired = service.get("desiredCount", 0)
    return f"{PRESENT} ({running}/{desired} running)"


def _load_balancer_state(elbv2: Any, load_balancer_arn: str | None) -> str:
    response = elbv2.describe_load_balancers(LoadBalancerArns=[load_balancer_arn])
    balancers = response.get("LoadBalancers", [])
    if not balancers:
        return MISSING
    return _state(balancers[0].get("State", {}).get("Code"), "active")


def _scaling_policy_state(autoscaling: Any, record: DeploymentRecord) -> str:
    response = autoscaling.describe_scaling_policies(
        ServiceNamespace=SERVICE_NAMESPACE,
        ResourceId=record.scalable_resource_id,
        ScalableDimension=SCALABLE_DIMENSION,
        PolicyNames=[record.scaling_policy_name],
    )
    if not response.get("ScalingPolicies"):
        return MISSING
    return PRESENT
