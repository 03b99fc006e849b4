"""VPC, subnet and egress provisioning."""

import ipaddress
from collections.abc import Callable
from typing import Any

from dd_agent_poc.core.deployments.aws_ecs.errors import CapacityExceededError
from dd_agent_poc.core.deployments.aws_ecs.models import (
    ANY_IPV4,
    PRIVATE_TIER,
    PUBLIC_TIER,
    NetworkPlan,
    NetworkTopology,
    SubnetPair,
    SubnetPlan,
    SubnetRef,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import ResourceKind, indexed_name, resource_name

TIERS_PER_ZONE = 2


def plan_network(
    vpc_cidr: str = "10.0.0.0/16",
    availability_zone_count: int = 2,
    subnet_cidr_mask: int = 24,
    nat_gateway_count: int = 1,
) -> NetworkPlan:
    """Partition the VPC block into one public and one private subnet per zone.

    Zone ``i`` receives the ``2i``-th block as its public subnet and the
    ``2i + 1``-th block as its private subnet. No AWS calls are made.

    Args:
        vpc_cidr: Address block for the whole VPC.
        availability_zone_count: Number of zones to spread subnets over.
        subnet_cidr_mask: Prefix length of every subnet.
        nat_gateway_count: Number of NAT gateways shared by private subnets.

    Returns:
        The validated network plan.

    Raises:
        CapacityExceededError: If the request cannot fit in the VPC block.
    """
    if availability_zone_count < 1:
        raise CapacityExceededError("At least one availability zone is required.")
    if nat_gateway_count < 1:
        raise CapacityExceededError("At least one NAT gateway is required for private egress.")
    if nat_gateway_count > availability_zone_count:
        raise CapacityExceededError(
            f"Cannot place {nat_gateway_count} NAT gateways in "
            f"{availability_zone_count} public subnets."
        )

    try:
        network = ipaddress.ip_network(vpc_cidr)
    except ValueError as exc:
        raise CapacityExceededError(f"Invalid VPC CIDR '{vpc_cidr}': {exc}") from exc

    if subnet_cidr_mask <= network.prefixlen or subnet_cidr_mask > network.max_prefixlen:
        raise CapacityExceededError(
            f"Subnet mask /{subnet_cidr_mask} cannot partition {vpc_cidr}."
        )

    capacity = 2 ** (subnet_cidr_mask - network.prefixlen)
    required = availability_zone_count * TIERS_PER_ZONE
    if required > capacity:
        raise CapacityExceededError(
            f"{availability_zone_count} zones need {required} /{subnet_cidr_mask} subnets "
            f"but {vpc_cidr} only holds {capacity}."
        )

    blocks = network.subnets(new_prefix=subnet_cidr_mask)
    subnets: list[SubnetPlan] = []
    for zone_index in range(availability_zone_count):
        subnets.append(SubnetPlan(zone_index, PUBLIC_TIER, str(next(blocks))))
        subnets.append(SubnetPlan(zone_index, PRIVATE_TIER, str(next(blocks))))

    return NetworkPlan(
        vpc_cidr=str(network),
        availability_zone_count=availability_zone_count,
        nat_gateway_count=nat_gateway_count,
        subnets=subnets,
    )


def create_network(
    session: Any,
    plan: NetworkPlan,
    env_name: str,
    reporter: Callable[[str], None],
) -> NetworkTopology:
    """Create the VPC described by a network plan.

    Public subnets share one route table with a default route to the internet
    gateway. Each private subnet gets its own route table whose default route
    points at a NAT gateway.
    """
    ec2 = session.client("ec2")
    zones = _availability_zones(ec2, plan.availability_zone_count)

    reporter(f"Creating VPC {plan.vpc_cidr}")
    vpc_id = ec2.create_vpc(CidrBlock=plan.vpc_cidr)["Vpc"]["VpcId"]
    ec2.modify_vpc_attribute(VpcId=vpc_id, EnableDnsSupport={"Value": True})
    ec2.modify_vpc_attribute(VpcId=vpc_id, EnableDnsHostnames={"Value": True})
    _tag_resource(ec2, vpc_id, resource_name(ResourceKind.VPC, env_name), env_name)

    reporter("Creating internet gateway")
    igw_id = ec2.create_internet_gateway()["InternetGateway"]["InternetGatewayId"]
    ec2.attach_internet_gateway(InternetGatewayId=igw_id, VpcId=vpc_id)
    _tag_resource(
        ec2, igw_id, resource_name(ResourceKind.INTERNET_GATEWAY, env_name), env_name
    )

    reporter(f"Creating {plan.availability_zone_count} public subnets")
    public_route_table_id = ec2.create_route_table(VpcId=vpc_id)["RouteTable"]["RouteTableId"]
    ec2.create_route(
        RouteTableId=public_route_table_id,
        DestinationCidrBlock=ANY_IPV4,
        GatewayId=igw_id,
    )
    _tag_resource(
        ec2,
        public_route_table_id,
        resource_name(ResourceKind.PUBLIC_ROUTE_TABLE, env_name),
        env_name,
    )

    public_subnets: list[SubnetRef] = []
    for subnet in plan.tier(PUBLIC_TIER):
        subnet_id = _create_subnet(ec2, vpc_id, subnet, zones[subnet.zone_index], public=True)
        ec2.associate_route_table(RouteTableId=public_route_table_id, SubnetId=subnet_id)
        _tag_resource(
            ec2,
            subnet_id,
            indexed_name(ResourceKind.PUBLIC_SUBNET, env_name, subnet.zone_index + 1),
            env_name,
        )
        public_subnets.append(
            SubnetRef(
                subnet_id=subnet_id,
                cidr_block=subnet.cidr_block,
                availability_zone=zones[subnet.zone_index],
                tier=PUBLIC_TIER,
                route_table_id=public_route_table_id,
                default_route_target=igw_id,
            )
        )

    reporter(
        f"Creating {plan.nat_gateway_count} NAT gateway(s) for private egress "
        "(this can take a few minutes)"
    )
    nat_gateway_ids: list[str] = []
    allocation_ids: list[str] = []
    for index in range(plan.nat_gateway_count):
        allocation_id = ec2.allocate_address(Domain="vpc")["AllocationId"]
        _tag_resource(
            ec2,
            allocation_id,
            indexed_name(ResourceKind.ELASTIC_IP, env_name, index + 1),
            env_name,
        )
        nat_gateway_id = ec2.create_nat_gateway(
            SubnetId=public_subnets[index].subnet_id,
            AllocationId=allocation_id,
        )["NatGateway"]["NatGatewayId"]
        _tag_resource(
            ec2,
            nat_gateway_id,
            indexed_name(ResourceKind.NAT_GATEWAY, env_name, index + 1),
            env_name,
        )
        allocation_ids.append(allocation_id)
        nat_gateway_ids.append(nat_gateway_id)
    ec2.get_waiter("nat_gateway_available").wait(NatGatewayIds=nat_gateway_ids)

    reporter(f"Creating {plan.availability_zone_count} private subnets")
    private_subnets: list[SubnetRef] = []
    for subnet in plan.tier(PRIVATE_TIER):
        subnet_id = _create_subnet(ec2, vpc_id, subnet, zones[subnet.zone_index], public=False)
        nat_gateway_id = nat_gateway_ids[subnet.zone_index % len(nat_gateway_ids)]
        route_table_id = ec2.create_route_table(VpcId=vpc_id)["RouteTable"]["RouteTableId"]
        ec2.create_route(
            RouteTableId=route_table_id,
            DestinationCidrBlock=ANY_IPV4,
            NatGatewayId=nat_gateway_id,
        )
        ec2.associate_route_table(RouteTableId=route_table_id, SubnetId=subnet_id)
        zone_number = subnet.zone_index + 1
        _tag_resource(
            ec2,
            route_table_id,
            indexed_name(ResourceKind.PRIVATE_ROUTE_TABLE, env_name, zone_number),
            env_name,
        )
        _tag_resource(
            ec2,
            subnet_id,
            indexed_name(ResourceKind.PRIVATE_SUBNET, env_name, zone_number),
            env_name,
        )
        private_subnets.append(
            SubnetRef(
                subnet_id=subnet_id,
                cidr_block=subnet.cidr_block,
                availability_zone=zones[subnet.zone_index],
                tier=PRIVATE_TIER,
                route_table_id=route_table_id,
                default_route_target=nat_gateway_id,
            )
        )

    reporter(f"VPC {vpc_id} created")
    return NetworkTopology(
        vpc_id=vpc_id,
        cidr_block=plan.vpc_cidr,
        internet_gateway_id=igw_id,
        subnet_pairs=[
            SubnetPair(public=public, private=private)
            for public, private in zip(public_subnets, private_subnets, strict=True)
        ],
        nat_gateway_ids=nat_gateway_ids,
        elastic_ip_allocation_ids=allocation_ids,
    )


def _create_subnet(
    ec2: Any,
    vpc_id: str,
    subnet: SubnetPlan,
    availability_zone: str,
    public: bool,
) -> str:
    """Create a subnet and set whether it maps public IPs on launch."""
    subnet_id = str(
        ec2.create_subnet(
            VpcId=vpc_id,
            CidrBlock=subnet.cidr_block,
            AvailabilityZone=availability_zone,
        )["Subnet"]["SubnetId"]
    )
    ec2.modify_subnet_attribute(SubnetId=subnet_id, MapPublicIpOnLaunch={"Value": public})
    return subnet_id


def _tag_resource(ec2: Any, resource_id: str, name: str, env_name: str) -> None:
    """Apply Name and Environment tags to a resource."""
    ec2.create_tags(
        Resources=[resource_id],
        Tags=[
            {"Key": "Name", "Value": name},
            {"Key": "Environment", "Value": env_name},
        ],
    )


def _availability_zones(ec2: Any, count: int) -> list[str]:
    """Return the first ``count`` available zones in the region."""
    response = ec2.describe_availability_zones(
        Filters=[{"Name": "state", "Values": ["available"]}]
    )
    zones = sorted(str(zone["ZoneName"]) for zone in response.get("AvailabilityZones", []))
    if len(zones) < count:
        raise CapacityExceededError(
            f"Requested {count} availability zones but the region only offers {len(zones)}."
        )
    return zones[:count]
