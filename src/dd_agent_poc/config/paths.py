"""Where dd-agent-poc keeps per-user files."""

from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "dd-agent-poc"


def config_dir() -> Path:
    """Return the per-user configuration directory."""
    return Path(user_config_dir(APP_NAME))


def env_path() -> Path:
    """Return the env file read by the settings classes."""
    return config_dir() / ".env"


def deployment_state_path(env_name: str) -> Path:
    """Return the file that records one environment's deployed resources.

    Args:
        env_name: Environment the deployment belongs to.

    Returns:
        ``<config dir>/deployments/<env_name>.json``.
    """
    return config_dir() / "deployments" / f"{env_name}.json"
