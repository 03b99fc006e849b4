"""Request-count autoscaling for the Fargate service."""

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

from dd_agent_poc.core.deployments.aws_ecs.errors import InvalidScalingBoundsError
from dd_agent_poc.core.deployments.aws_ecs.models import (
    ComputeService,
    EnvironmentConfig,
    LoadBalancer,
    ScalingPolicy,
    TargetGroup,
)
from dd_agent_poc.core.deployments.aws_ecs.naming import ResourceKind, resource_name

SERVICE_NAMESPACE = "ecs"
SCALABLE_DIMENSION = "ecs:service:DesiredCount"
REQUEST_COUNT_METRIC = "ALBRequestCountPerTarget"


def validate_scaling_bounds(config: EnvironmentConfig) -> EnvironmentConfig:
    """Check instance bounds and the request target.

    Raises:
        InvalidScalingBoundsError: If min < 1, max < min, or target <= 0.
    """
    if config.min_instances < 1:
        raise InvalidScalingBoundsError(
            f"Minimum instances must be at least 1, got {config.min_instances}."
        )
    if config.max_instances < config.min_instances:
        raise InvalidScalingBoundsError(
            f"Maximum instances ({config.max_instances}) cannot be lower than "
            f"minimum instances ({config.min_instances})."
        )
    if config.requests_per_instance_target <= 0:
        raise InvalidScalingBoundsError(
            "Requests per instance target must be greater than 0, "
            f"got {config.requests_per_instance_target}."
        )
    return config


def request_count_resource_label(load_balancer: LoadBalancer, target_group: TargetGroup) -> str:
    """Build the ``app/<alb>/<id>/targetgroup/<tg>/<id>`` metric label from ARNs."""
    _, _, balancer_part = load_balancer.arn.partition(":loadbalancer/")
    target_part = target_group.arn.rsplit(":", 1)[-1]
    if not balancer_part or not target_part.startswith("targetgroup/"):
        raise ValueError(
            f"Cannot derive a resource label from {load_balancer.arn} and {target_group.arn}."
        )
    return f"{balancer_part}/{target_part}"


def create_scaling_policy(
    session: Any,
    compute: ComputeService,
    load_balancer: LoadBalancer,
    target_group: TargetGroup,
    config: EnvironmentConfig,
    reporter: Callable[[str], None],
    scale_in_cooldown_seconds: int = 60,
    scale_out_cooldown_seconds: int = 60,
) -> ScalingPolicy:
    """Track ALB requests per target on the service's desired count."""
    validate_scaling_bounds(config)
    if scale_in_cooldown_seconds < 0 or scale_out_cooldown_seconds < 0:
        raise InvalidScalingBoundsError("Cooldowns cannot be negative.")

    autoscaling = session.client("application-autoscaling")
    resource_id = f"service/{compute.cluster_name}/{compute.service_name}"
    policy_name = resource_name(ResourceKind.SCALING_POLICY, config.environment_name)
    resource_label = request_count_resource_label(load_balancer, target_group)

    reporter(
        f"Registering scalable target with capacity "
        f"{config.min_instances}-{config.max_instances}"
    )
    autoscaling.register_scalable_target(
        ServiceNamespace=SERVICE_NAMESPACE,
        ResourceId=resource_id,
        ScalableDimension=SCALABLE_DIMENSION,
        MinCapacity=config.min_instances,
        MaxCapacity=config.max_instances,
    )

    reporter(f"Tracking {config.requests_per_instance_target} requests per task")
    response = autoscaling.put_scaling_policy(
        PolicyName=policy_name,
        ServiceNamespace=SERVICE_NAMESPACE,
        ResourceId=resource_id,
        ScalableDimension=SCALABLE_DIMENSION,
        PolicyType="TargetTrackingScaling",
        TargetTrackingScalingPolicyConfiguration={
            "TargetValue": float(config.requests_per_instance_target),
            "PredefinedMetricSpecification": {
                "PredefinedMetricType": REQUEST_COUNT_METRIC,
                "ResourceLabel": resource_label,
            },
            "ScaleInCooldown": scale_in_cooldown_seconds,
            "ScaleOutCooldown": scale_out_cooldown_seconds,
        },
    )

    return ScalingPolicy(
        policy_name=policy_name,
        policy_arn=cast(str, response["PolicyARN"]),
        resource_id=resource_id,
        resource_label=resource_label,
        min_capacity=config.min_instances,
        max_capacity=config.max_instances,
        target_value=config.requests_per_instance_target,
        scale_in_cooldown_seconds=scale_in_cooldown_seconds,
        scale_out_cooldown_seconds=scale_out_cooldown_seconds,
    )


@dataclass(frozen=True)
class ScalingAction:
    """A change of desired count taken by the controller."""

    timestamp: float
    previous_count: int
    desired_count: int

    @property
    def scale_out(self) -> bool:
        return self.desired_count > self.previous_count


class TargetTrackingController:
    """Reactive model of the request-count target tracking policy.

    Each observation of total requests per evaluation period yields the count
    that would bring requests per instance back to the target. The result is
    clamped to the capacity bounds. An action is suppressed while the
    cooldown of the previous action is still running.
    """

    def __init__(
        self,
        min_capacity: int,
        max_capacity: int,
        target_value: int,
        scale_in_cooldown_seconds: float = 60,
        scale_out_cooldown_seconds: float = 60,
        initial_count: int | None = None,
    ) -> None:
        validate_scaling_bounds(
            EnvironmentConfig(
                environment_name="controller",
                min_instances=min_capacity,
                max_instances=max_capacity,
                requests_per_instance_target=target_value,
            )
        )
        self.min_capacity = min_capacity
        self.max_capacity = max_capacity
        self.target_value = target_value
        self.scale_in_cooldown_seconds = scale_in_cooldown_seconds
        self.scale_out_cooldown_seconds = scale_out_cooldown_seconds
        start = min_capacity if initial_count is None else initial_count
        self.current_count = self.clamp(start)
        self.actions: list[ScalingAction] = []
        self._last_observed_at: float | None = None

    @classmethod
    def from_policy(
        cls, policy: ScalingPolicy, initial_count: int | None = None
    ) -> "TargetTrackingController":
        return cls(
            min_capacity=policy.min_capacity,
            max_capacity=policy.max_capacity,
            target_value=policy.target_value,
            scale_in_cooldown_seconds=policy.scale_in_cooldown_seconds,
            scale_out_cooldown_seconds=policy.scale_out_cooldown_seconds,
            initial_count=initial_count,
        )

    def clamp(self, count: int) -> int:
        return max(self.min_capacity, min(self.max_capacity, count))

    def desired_for(self, total_requests: float) -> int:
        """Return the bounded count needed to serve ``total_requests``."""
        if total_requests < 0:
            raise ValueError("Request volume cannot be negative.")
        return self.clamp(math.ceil(total_requests / self.target_value))

    def observe(self, timestamp: float, total_requests: float) -> ScalingAction | None:
        """Feed one observation and return the action taken, if any."""
        if self._last_observed_at is not None and timestamp < self._last_observed_at:
            raise ValueError("Observations must be fed in time order.")
        self._last_observed_at = timestamp

        desired = self.desired_for(total_requests)
        if desired == self.current_count:
            return None

        scale_out = desired > self.current_count
        cooldown = self.scale_out_cooldown_seconds if scale_out else self.scale_in_cooldown_seconds
        if self.actions and timestamp - self.actions[-1].timestamp < cooldown:
            return None

        action = ScalingAction(timestamp, self.current_count, desired)
        self.actions.append(action)
        self.current_count = desired
        return action
