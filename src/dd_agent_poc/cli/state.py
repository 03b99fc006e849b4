"""Persisted deployment state for the CLI."""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from dd_agent_poc.config.paths import deployment_state_path
from dd_agent_poc.core.deployments.aws_ecs import DeploymentRecord, Topology


class StateError(RuntimeError):
    """Deployment state related errors."""


class DeploymentState(BaseModel):
    """Outputs and resource ids of one deployed environment."""

    model_config = ConfigDict(extra="ignore")

    aws_region: str
    aws_profile: str | None = None
    resources: DeploymentRecord

    @classmethod
    def from_topology(
        cls, topology: Topology, aws_region: str, aws_profile: str | None
    ) -> "DeploymentState":
        return cls(
            aws_region=aws_region,
            aws_profile=aws_profile,
            resources=DeploymentRecord.from_topology(topology),
        )


def load_state(env_name: str) -> DeploymentState | None:
    """Load the saved state of an environment.

    Args:
        env_name: Environment to load.

    Returns:
        The saved state, or None when the environment was never deployed.
    """
    path = deployment_state_path(env_name)
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise StateError(f"Invalid deployment state file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise StateError("Deployment state file must contain a JSON object.")

    try:
        return DeploymentState.model_validate(data)
    except ValidationError as exc:
        raise StateError(f"Invalid deployment state values: {exc}") from exc


def save_state(state: DeploymentState) -> Path:
    """Save deployment state to disk.

    Args:
        state: State to save.

    Returns:
        The saved state file path.
    """
    path = deployment_state_path(state.resources.environment_name)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state.model_dump(mode="json"), indent=2), encoding="utf-8")
    return path


def clear_state(env_name: str) -> None:
    """Remove the saved state of an environment."""
    deployment_state_path(env_name).unlink(missing_ok=True)
