"""Data models for the ECS topology."""

from dataclasses import dataclass, field

PUBLIC_TIER = "public"
PRIVATE_TIER = "private"
ANY_IPV4 = "0.0.0.0/0"


@dataclass(frozen=True)
class EnvironmentConfig:
    """Caller supplied parameters for one environment."""

    environment_name: str
    min_instances: int = 1
    max_instances: int = 10
    requests_per_instance_target: int = 1000
    region: str | None = None


@dataclass(frozen=True)
class WorkloadSpec:
    """Application container attached to the compute service."""

    image_reference: str
    container_port: int = 80
    health_check_command: list[str] = field(
        default_factory=lambda: ["CMD-SHELL", "curl -f http://localhost/health || exit 1"]
    )
    start_period_seconds: int = 3
    container_name: str = "app"


@dataclass(frozen=True)
class HealthCheckPolicy:
    """Target group health-check settings."""

    path: str = "/health"
    interval_seconds: int = 30
    timeout_seconds: int = 5
    healthy_threshold: int = 2
    unhealthy_threshold: int = 2


@dataclass(frozen=True)
class TopologyOptions:
    """Tunables with defaults matching the reference topology."""

    availability_zone_count: int = 2
    subnet_cidr_mask: int = 24
    nat_gateway_count: int = 1
    vpc_cidr: str = "10.0.0.0/16"
    published_port: int = 80
    desired_count: int = 1
    task_cpu: int = 256
    task_memory: int = 512
    health_check: HealthCheckPolicy = field(default_factory=HealthCheckPolicy)
    scale_in_cooldown_seconds: int = 60
    scale_out_cooldown_seconds: int = 60


@dataclass(frozen=True)
class SubnetPlan:
    """Planned subnet before creation."""

    zone_index: int
    tier: str
    cidr_block: str


@dataclass(frozen=True)
class NetworkPlan:
    """Validated address layout for the VPC."""

    vpc_cidr: str
    availability_zone_count: int
    nat_gateway_count: int
    subnets: list[SubnetPlan]

    def tier(self, tier: str) -> list[SubnetPlan]:
        """Return planned subnets of one tier, ordered by zone."""
        return [subnet for subnet in self.subnets if subnet.tier == tier]


@dataclass
class SubnetRef:
    """A created subnet and its default route."""

    subnet_id: str
    cidr_block: str
    availability_zone: str
    tier: str
    route_table_id: str
    default_route_target: str


@dataclass
class SubnetPair:
    """Public and private subnet in the same zone."""

    public: SubnetRef
    private: SubnetRef


@dataclass
class NetworkTopology:
    """Created VPC, subnets and egress points."""

    vpc_id: str
    cidr_block: str
    internet_gateway_id: str
    subnet_pairs: list[SubnetPair] = field(default_factory=list)
    nat_gateway_ids: list[str] = field(default_factory=list)
    elastic_ip_allocation_ids: list[str] = field(default_factory=list)

    @property
    def availability_zone_count(self) -> int:
        return len(self.subnet_pairs)

    @property
    def public_subnet_ids(self) -> list[str]:
        return [pair.public.subnet_id for pair in self.subnet_pairs]

    @property
    def private_subnet_ids(self) -> list[str]:
        return [pair.private.subnet_id for pair in self.subnet_pairs]

    @property
    def route_table_ids(self) -> list[str]:
        ids: list[str] = []
        for pair in self.subnet_pairs:
            for subnet in (pair.public, pair.private):
                if subnet.route_table_id not in ids:
                    ids.append(subnet.route_table_id)
        return ids


@dataclass
class SecurityGroupInfo:
    """Representation of a security group."""

    group_id: str
    name: str
    description: str


@dataclass(frozen=True)
class IngressRule:
    """Inbound TCP rule on a security group.

    Exactly one of ``source_cidr`` and ``source_group_id`` is set.
    """

    group_id: str
    port: int
    description: str
    source_cidr: str | None = None
    source_group_id: str | None = None
    protocol: str = "tcp"


@dataclass
class SecurityBoundary:
    """Edge and service security groups with their ingress rules."""

    edge: SecurityGroupInfo
    service: SecurityGroupInfo
    published_port: int
    rules: list[IngressRule] = field(default_factory=list)

    def rules_for(self, group_id: str) -> list[IngressRule]:
        """Return the ingress rules attached to one group."""
        return [rule for rule in self.rules if rule.group_id == group_id]


@dataclass
class ComputeService:
    """ECS cluster, task definition and Fargate service."""

    cluster_name: str
    cluster_arn: str
    service_name: str
    service_arn: str
    task_definition_arn: str
    task_family: str
    container_name: str
    container_port: int
    desired_count: int
    security_group_id: str
    subnet_ids: list[str]
    log_group_name: str
    execution_role_arn: str
    execution_role_name: str


@dataclass
class TargetGroup:
    """Health-checked pool the load balancer forwards to."""

    arn: str
    name: str
    port: int
    health_check: HealthCheckPolicy
    target_type: str = "ip"
    members: list[str] = field(default_factory=list)


@dataclass
class Listener:
    """Load balancer listener forwarding to one target group."""

    arn: str
    port: int
    protocol: str
    target_group_arn: str


@dataclass
class LoadBalancer:
    """Application load balancer in the public subnets."""

    arn: str
    name: str
    dns_name: str
    scheme: str
    subnet_ids: list[str]
    security_group_id: str
    listeners: list[Listener] = field(default_factory=list)


@dataclass
class ScalingPolicy:
    """Target tracking policy on ALB request count per target."""

    policy_name: str
    policy_arn: str
    resource_id: str
    resource_label: str
    min_capacity: int
    max_capacity: int
    target_value: int
    scale_in_cooldown_seconds: int
    scale_out_cooldown_seconds: int


@dataclass
class Topology:
    """Everything created by one assembly run."""

    environment_name: str
    network: NetworkTopology
    security: SecurityBoundary
    compute: ComputeService
    target_group: TargetGroup
    load_balancer: LoadBalancer
    scaling_policy: ScalingPolicy

    def outputs(self) -> "TopologyOutputs":
        return TopologyOutputs(
            load_balancer_dns_name=self.load_balancer.dns_name,
            cluster_name=self.compute.cluster_name,
            service_name=self.compute.service_name,
            vpc_id=self.network.vpc_id,
        )


@dataclass(frozen=True)
class TopologyOutputs:
    """Public identifiers surfaced to operators and smoke tests."""

    load_balancer_dns_name: str
    cluster_name: str
    service_name: str
    vpc_id: str


@dataclass
class DeploymentRecord:
    """Identifiers needed to inspect or tear down a deployed topology."""

    environment_name: str
    vpc_id: str | None = None
    internet_gateway_id: str | None = None
    subnet_ids: list[str] = field(default_factory=list)
    route_table_ids: list[str] = field(default_factory=list)
    nat_gateway_ids: list[str] = field(default_factory=list)
    elastic_ip_allocation_ids: list[str] = field(default_factory=list)
    edge_security_group_id: str | None = None
    service_security_group_id: str | None = None
    cluster_name: str | None = None
    service_name: str | None = None
    task_definition_arn: str | None = None
    log_group_name: str | None = None
    execution_role_name: str | None = None
    target_group_arn: str | None = None
    load_balancer_arn: str | None = None
    load_balancer_dns_name: str | None = None
    listener_arns: list[str] = field(default_factory=list)
    scalable_resource_id: str | None = None
    scaling_policy_name: str | None = None

    @classmethod
    def from_topology(cls, topology: Topology) -> "DeploymentRecord":
        network = topology.network
        return cls(
            environment_name=topology.environment_name,
            vpc_id=network.vpc_id,
            internet_gateway_id=network.internet_gateway_id,
            subnet_ids=network.public_subnet_ids + network.private_subnet_ids,
            route_table_ids=network.route_table_ids,
            nat_gateway_ids=list(network.nat_gateway_ids),
            elastic_ip_allocation_ids=list(network.elastic_ip_allocation_ids),
            edge_security_group_id=topology.security.edge.group_id,
            service_security_group_id=topology.security.service.group_id,
            cluster_name=topology.compute.cluster_name,
            service_name=topology.compute.service_name,
            task_definition_arn=topology.compute.task_definition_arn,
            log_group_name=topology.compute.log_group_name,
            execution_role_name=topology.compute.execution_role_name,
            target_group_arn=topology.target_group.arn,
            load_balancer_arn=topology.load_balancer.arn,
            load_balancer_dns_name=topology.load_balancer.dns_name,
            listener_arns=[listener.arn for listener in topology.load_balancer.listeners],
            scalable_resource_id=topology.scaling_policy.resource_id,
            scaling_policy_name=topology.scaling_policy.policy_name,
        )
