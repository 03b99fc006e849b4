"""Runtime settings for topology assembly."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dd_agent_poc.config.paths import env_path
from dd_agent_poc.core.deployments.aws_ecs.models import (
    EnvironmentConfig,
    TopologyOptions,
    WorkloadSpec,
)

ENV_FILE_PATH = str(env_path())


class AWSSettings(BaseSettings):
    """AWS configuration for the provisioning session."""

    model_config = SettingsConfigDict(env_prefix="AWS_", env_file=ENV_FILE_PATH, extra="ignore")

    region: str = Field(default="eu-west-2", description="AWS region")
    profile: str | None = Field(default=None, description="AWS named profile")


class TopologySettings(BaseSettings):
    """Environment parameters for one topology."""

    model_config = SettingsConfigDict(
        env_prefix="DD_AGENT_",
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    env_name: str = Field(
        default="dev",
        validation_alias=AliasChoices("env_name", "DD_AGENT_ENV_NAME", "ENV_NAME"),
        description="Environment name used in every resource name",
    )
    min_instances: int = Field(default=1, description="Lower bound on running tasks")
    max_instances: int = Field(default=10, description="Upper bound on running tasks")
    requests_per_instance_target: int = Field(
        default=1000, description="ALB requests per task the autoscaler tracks"
    )
    published_port: int = Field(default=80, description="Port exposed by the load balancer")
    availability_zone_count: int = Field(default=2, description="Zones to spread subnets over")
    nat_gateway_count: int = Field(default=1, description="NAT gateways for private egress")
    image: str | None = Field(default=None, description="Workload container image reference")

    def to_environment_config(self, region: str | None = None) -> EnvironmentConfig:
        """Convert settings into the assembler's environment config."""
        return EnvironmentConfig(
            environment_name=self.env_name,
            min_instances=self.min_instances,
            max_instances=self.max_instances,
            requests_per_instance_target=self.requests_per_instance_target,
            region=region,
        )

    def to_topology_options(self) -> TopologyOptions:
        """Convert settings into topology tunables."""
        return TopologyOptions(
            availability_zone_count=self.availability_zone_count,
            nat_gateway_count=self.nat_gateway_count,
            published_port=self.published_port,
        )

    def to_workload(self) -> WorkloadSpec | None:
        """Return the workload spec, or None when no image is configured."""
        if not self.image:
            return None
        return WorkloadSpec(image_reference=self.image, container_port=self.published_port)


def get_settings() -> tuple[AWSSettings, TopologySettings]:
    """Load AWS and topology settings from the environment and env file."""
    return AWSSettings(), TopologySettings()
