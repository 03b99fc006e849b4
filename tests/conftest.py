"""Shared fixtures: a recording fake of a boto3 session."""

import itertools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest
from botocore.exceptions import ClientError

from dd_agent_poc.core.deployments.aws_ecs import EnvironmentConfig, WorkloadSpec

ACCOUNT_ID = "123456789012"
REGION = "eu-west-2"


@dataclass
class Call:
    """One recorded provisioning call."""

    service: str
    operation: str
    kwargs: dict[str, Any]


def client_error(code: str, operation: str = "Operation") -> ClientError:
    """Build a botocore ClientError with a given code."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} (fake)"}}, operation)


class FakeWaiter:
    def __init__(self, session: "FakeSession", service: str, name: str) -> None:
        self._session = session
        self._service = service
        self._name = name

    def wait(self, **kwargs: Any) -> None:
        self._session.calls.append(Call(self._service, f"wait:{self._name}", kwargs))


class FakeClient:
    """Dispatch calls to ``FakeSession`` responders and record them."""

    def __init__(self, session: "FakeSession", service: str) -> None:
        self._session = session
        self._service = service

    def get_waiter(self, name: str) -> FakeWaiter:
        return FakeWaiter(self._session, self._service, name)

    def __getattr__(self, operation: str) -> Callable[..., dict[str, Any]]:
        if operation.startswith("_"):
            raise AttributeError(operation)

        def call(**kwargs: Any) -> dict[str, Any]:
            self._session.calls.append(Call(self._service, operation, kwargs))
            failure = self._session.failures.get((self._service, operation))
            if failure is not None:
                raise failure
            override = self._session.responses.get((self._service, operation))
            if override is not None:
                return override(**kwargs) if callable(override) else override
            responder = getattr(
                self._session, f"_{self._service.replace('-', '_')}_{operation}", None
            )
            return responder(**kwargs) if responder else {}

        return call


class FakeSession:
    """Stand-in for ``boto3.session.Session`` that never talks to AWS."""

    def __init__(self, region_name: str = REGION, zone_count: int = 3) -> None:
        self.region_name = region_name
        self.zone_count = zone_count
        self.calls: list[Call] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.responses: dict[tuple[str, str], Any] = {}
        self._ids = itertools.count(1)

    def client(self, service: str) -> FakeClient:
        return FakeClient(self, service)

    def fail(self, service: str, operation: str, code: str = "InternalFailure") -> None:
        """Make every call to an operation raise a ClientError."""
        self.failures[(service, operation)] = client_error(code, operation)

    def calls_to(self, service: str, operation: str) -> list[dict[str, Any]]:
        return [
            call.kwargs
            for call in self.calls
            if call.service == service and call.operation == operation
        ]

    def creation_calls(self) -> list[Call]:
        prefixes = ("create_", "allocate_", "authorize_", "register_", "put_", "attach_")
        return [call for call in self.calls if call.operation.startswith(prefixes)]

    def _id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):08x}"

    def _arn(self, service: str, resource: str) -> str:
        return f"arn:aws:{service}:{self.region_name}:{ACCOUNT_ID}:{resource}"

    # sts
    def _sts_get_caller_identity(self) -> dict[str, Any]:
        return {
            "Account": ACCOUNT_ID,
            "Arn": f"arn:aws:iam::{ACCOUNT_ID}:user/tester",
            "UserId": "AIDTEST",
        }

    # ec2
    def _ec2_describe_availability_zones(self, **_: Any) -> dict[str, Any]:
        zones = [f"{self.region_name}{chr(ord('a') + i)}" for i in range(self.zone_count)]
        return {"AvailabilityZones": [{"ZoneName": zone, "State": "available"} for zone in zones]}

    def _ec2_create_vpc(self, **_: Any) -> dict[str, Any]:
        return {"Vpc": {"VpcId": self._id("vpc")}}

    def _ec2_create_internet_gateway(self, **_: Any) -> dict[str, Any]:
        return {"InternetGateway": {"InternetGatewayId": self._id("igw")}}

    def _ec2_create_route_table(self, **_: Any) -> dict[str, Any]:
        return {"RouteTable": {"RouteTableId": self._id("rtb")}}

    def _ec2_create_subnet(self, **_: Any) -> dict[str, Any]:
        return {"Subnet": {"SubnetId": self._id("subnet")}}

    def _ec2_allocate_address(self, **_: Any) -> dict[str, Any]:
        return {"AllocationId": self._id("eipalloc")}

    def _ec2_create_nat_gateway(self, **_: Any) -> dict[str, Any]:
        return {"NatGateway": {"NatGatewayId": self._id("nat")}}

    def _ec2_create_security_group(self, **_: Any) -> dict[str, Any]:
        return {"GroupId": self._id("sg")}

    # iam
    def _iam_get_role(self, **_: Any) -> dict[str, Any]:
        raise client_error("NoSuchEntity", "GetRole")

    def _iam_create_role(self, RoleName: str, **_: Any) -> dict[str, Any]:
        return {"Role": {"Arn": f"arn:aws:iam::{ACCOUNT_ID}:role/{RoleName}"}}

    # ecs
    def _ecs_create_cluster(self, clusterName: str, **_: Any) -> dict[str, Any]:
        return {"cluster": {"clusterArn": self._arn("ecs", f"cluster/{clusterName}")}}

    def _ecs_register_task_definition(self, family: str, **_: Any) -> dict[str, Any]:
        arn = self._arn("ecs", f"task-definition/{family}:1")
        return {"taskDefinition": {"taskDefinitionArn": arn}}

    def _ecs_create_service(self, cluster: str, serviceName: str, **_: Any) -> dict[str, Any]:
        return {"service": {"serviceArn": self._arn("ecs", f"service/{cluster}/{serviceName}")}}

    # elbv2
    def _elbv2_create_target_group(self, Name: str, **_: Any) -> dict[str, Any]:
        arn = self._arn("elasticloadbalancing", f"targetgroup/{Name}/{next(self._ids):016x}")
        return {"TargetGroups": [{"TargetGroupArn": arn}]}

    def _elbv2_create_load_balancer(self, Name: str, **_: Any) -> dict[str, Any]:
        suffix = f"{next(self._ids):016x}"
        return {
            "LoadBalancers": [
                {
                    "LoadBalancerArn": self._arn(
                        "elasticloadbalancing", f"loadbalancer/app/{Name}/{suffix}"
                    ),
                    "DNSName": f"{Name}-{suffix[-6:]}.{self.region_name}.elb.amazonaws.com",
                }
            ]
        }

    def _elbv2_create_listener(self, **_: Any) -> dict[str, Any]:
        arn = self._arn("elasticloadbalancing", f"listener/app/alb/{next(self._ids):016x}")
        return {"Listeners": [{"ListenerArn": arn}]}

    # application-autoscaling
    def _application_autoscaling_put_scaling_policy(
        self, PolicyName: str, **_: Any
    ) -> dict[str, Any]:
        return {
            "PolicyARN": self._arn(
                "autoscaling", f"scalingPolicy:{next(self._ids):08x}:policyName/{PolicyName}"
            )
        }


@pytest.fixture
def fake_session() -> FakeSession:
    """A fresh fake provisioning session."""
    return FakeSession()


@pytest.fixture
def session_factory() -> Callable[..., FakeSession]:
    """Build independent fake sessions."""
    return FakeSession


@pytest.fixture
def workload() -> WorkloadSpec:
    """The demo app container."""
    return WorkloadSpec(image_reference=f"{ACCOUNT_ID}.dkr.ecr.{REGION}.amazonaws.com/demo:1")


@pytest.fixture
def env_config() -> EnvironmentConfig:
    """Default dev environment."""
    return EnvironmentConfig(environment_name="dev")


@pytest.fixture
def messages() -> list[str]:
    """Collect reporter output."""
    return []
