"""Teardown of a deployed topology."""

import time
from collections.abc import Callable
from typing import Any

from botocore.exceptions import ClientError, WaiterError

from dd_agent_poc.core.deployments.aws_ecs.autoscaling import SCALABLE_DIMENSION, SERVICE_NAMESPACE
from dd_agent_poc.core.deployments.aws_ecs.iam import TASK_EXECUTION_POLICY_ARN
from dd_agent_poc.core.deployments.aws_ecs.models import DeploymentRecord

NAT_DELETE_ATTEMPTS = 30
NAT_DELETE_DELAY_SECONDS = 10

_MISSING_CODES = {
    "ObjectNotFoundException",
    "ServiceNotFoundException",
    "ClusterNotFoundException",
    "ListenerNotFound",
    "LoadBalancerNotFound",
    "TargetGroupNotFound",
    "ResourceNotFoundException",
    "NoSuchEntity",
    "InvalidGroup.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidRouteTableID.NotFound",
    "InvalidInternetGatewayID.NotFound",
    "InvalidAllocationID.NotFound",
    "InvalidVpcID.NotFound",
    "NatGatewayNotFound",
}


def destroy_topology(
    session: Any,
    record: DeploymentRecord,
    reporter: Callable[[str], None],
) -> None:
    """Delete a topology in reverse dependency order.

    Missing resources are skipped. Other failures are reported and the
    teardown carries on with the remaining resources.
    """
    if record.scalable_resource_id:
        reporter("Removing autoscaling policy")
        _remove_scaling(session, record, reporter)

    if record.cluster_name and record.service_name:
        reporter(f"Deleting ECS service {record.service_name}")
        _delete_service(session, record.cluster_name, record.service_name, reporter)

    if record.load_balancer_arn or record.target_group_arn:
        reporter("Deleting load balancer and target group")
        _delete_load_balancing(session, record, reporter)

    if record.task_definition_arn:
        reporter("Deregistering task definition")
        _attempt(
            reporter,
            "deregister task definition",
            lambda: session.client("ecs").deregister_task_definition(
                taskDefinition=record.task_definition_arn
            ),
        )

    if record.cluster_name:
        reporter(f"Deleting ECS cluster {record.cluster_name}")
        _attempt(
            reporter,
            "delete cluster",
            lambda: session.client("ecs").delete_cluster(cluster=record.cluster_name),
        )

    if record.log_group_name:
        reporter("Deleting CloudWatch log group")
        _attempt(
            reporter,
            "delete log group",
            lambda: session.client("logs").delete_log_group(logGroupName=record.log_group_name),
        )

    if record.execution_role_name:
        reporter(f"Removing IAM role {record.execution_role_name}")
        _delete_role(session, record.execution_role_name, reporter)

    if record.vpc_id:
        reporter("Deleting VPC resources")
        _cleanup_network(session, record, reporter)


def _attempt(reporter: Callable[[str], None], label: str, action: Callable[[], Any]) -> bool:
    """Run a delete call, skipping resources that are already gone."""
    try:
        action()
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code not in _MISSING_CODES:
            reporter(f"Failed to {label}: {exc}")
            return False
    return True


def _remove_scaling(
    session: Any, record: DeploymentRecord, reporter: Callable[[str], None]
) -> None:
    autoscaling = session.client("application-autoscaling")
    if record.scaling_policy_name:
        _attempt(
            reporter,
            "delete scaling policy",
            lambda: autoscaling.delete_scaling_policy(
                PolicyName=record.scaling_policy_name,
                ServiceNamespace=SERVICE_NAMESPACE,
                ResourceId=record.scalable_resource_id,
                ScalableDimension=SCALABLE_DIMENSION,
            ),
        )
    _attempt(
        reporter,
        "deregister scalable target",
        lambda: autoscaling.deregister_scalable_target(
            ServiceNamespace=SERVICE_NAMESPACE,
            ResourceId=record.scalable_resource_id,
            ScalableDimension=SCALABLE_DIMENSION,
        ),
    )


def _delete_service(
    session: Any,
    cluster_name: str,
    service_name: str,
    reporter: Callable[[str], None],
) -> None:
    """Scale the service to zero, then delete it."""
    ecs = session.client("ecs")
    scaled = _attempt(
        reporter,
        f"scale {service_name} to zero",
        lambda: ecs.update_service(cluster=cluster_name, service=service_name, desiredCount=0),
    )
    if not scaled:
        return
    _attempt(
        reporter,
        f"delete service {service_name}",
        lambda: ecs.delete_service(cluster=cluster_name, service=service_name, force=True),
    )
    try:
        ecs.get_waiter("services_inactive").wait(cluster=cluster_name, services=[service_name])
    except WaiterError as exc:
        reporter(f"Service {service_name} did not become inactive: {exc}")


def _delete_load_balancing(
    session: Any, record: DeploymentRecord, reporter: Callable[[str], None]
) -> None:
    elbv2 = session.client("elbv2")
    for listener_arn in record.listener_arns:
        _attempt(
            reporter,
            f"delete listener {listener_arn}",
            lambda arn=listener_arn: elbv2.delete_listener(ListenerArn=arn),
        )

    if record.load_balancer_arn:
        deleted = _attempt(
            reporter,
            "delete load balancer",
            lambda: elbv2.delete_load_balancer(LoadBalancerArn=record.load_balancer_arn),
        )
        if deleted:
            try:
                elbv2.get_waiter("load_balancers_deleted").wait(
                    LoadBalancerArns=[record.load_balancer_arn]
                )
            except WaiterError as exc:
                reporter(f"Load balancer deletion is still in progress: {exc}")

    if record.target_group_arn:
        _attempt(
            reporter,
            "delete target group",
            lambda: elbv2.delete_target_group(TargetGroupArn=record.target_group_arn),
        )


def _delete_role(session: Any, role_name: str, reporter: Callable[[str], None]) -> None:
    iam = session.client("iam")
    _attempt(
        reporter,
        f"detach policy from {role_name}",
        lambda: iam.detach_role_policy(RoleName=role_name, PolicyArn=TASK_EXECUTION_POLICY_ARN),
    )
    _attempt(reporter, f"delete role {role_name}", lambda: iam.delete_role(RoleName=role_name))


def _cleanup_network(
    session: Any, record: DeploymentRecord, reporter: Callable[[str], None]
) -> None:
    """Delete security groups, egress points, routes, subnets and the VPC."""
    ec2 = session.client("ec2")

    # The service group references the edge group, so it goes first.
    for group_id in (record.service_security_group_id, record.edge_security_group_id):
        if group_id:
            reporter(f"Deleting security group {group_id}")
            _attempt(
                reporter,
                f"delete security group {group_id}",
                lambda gid=group_id: ec2.delete_security_group(GroupId=gid),
            )

    for nat_gateway_id in record.nat_gateway_ids:
        reporter(f"Deleting NAT gateway {nat_gateway_id}")
        _attempt(
            reporter,
            f"delete NAT gateway {nat_gateway_id}",
            lambda nid=nat_gateway_id: ec2.delete_nat_gateway(NatGatewayId=nid),
        )
    if record.nat_gateway_ids:
        _wait_for_nat_gateways(ec2, record.nat_gateway_ids, reporter)

    for allocation_id in record.elastic_ip_allocation_ids:
        reporter(f"Releasing Elastic IP {allocation_id}")
        _attempt(
            reporter,
            f"release Elastic IP {allocation_id}",
            lambda aid=allocation_id: ec2.release_address(AllocationId=aid),
        )

    if record.internet_gateway_id:
        igw_id = record.internet_gateway_id
        reporter(f"Detaching and deleting internet gateway {igw_id}")
        _attempt(
            reporter,
            f"detach internet gateway {igw_id}",
            lambda: ec2.detach_internet_gateway(InternetGatewayId=igw_id, VpcId=record.vpc_id),
        )
        _attempt(
            reporter,
            f"delete internet gateway {igw_id}",
            lambda: ec2.delete_internet_gateway(InternetGatewayId=igw_id),
        )

    for subnet_id in record.subnet_ids:
        _attempt(
            reporter,
            f"delete subnet {subnet_id}",
            lambda sid=subnet_id: ec2.delete_subnet(SubnetId=sid),
        )

    for route_table_id in record.route_table_ids:
        _attempt(
            reporter,
            f"delete route table {route_table_id}",
            lambda rid=route_table_id: ec2.delete_route_table(RouteTableId=rid),
        )

    reporter(f"Deleting VPC {record.vpc_id}")
    _attempt(
        reporter,
        f"delete VPC {record.vpc_id}",
        lambda: ec2.delete_vpc(VpcId=record.vpc_id),
    )


def _wait_for_nat_gateways(ec2: Any, nat_ids: list[str], reporter: Callable[[str], None]) -> None:
    """Wait for NAT gateways to delete."""
    for _ in range(NAT_DELETE_ATTEMPTS):
        try:
            response = ec2.describe_nat_gateways(NatGatewayIds=nat_ids)
        except ClientError as exc:
            reporter(f"Failed to read NAT gateway state: {exc}")
            return
        states = {gw["NatGatewayId"]: gw["State"] for gw in response.get("NatGateways", [])}
        if all(state == "deleted" for state in states.values()):
            return
        reporter("Waiting for NAT gateways to delete...")
        time.sleep(NAT_DELETE_DELAY_SECONDS)
