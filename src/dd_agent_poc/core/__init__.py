"""Core topology modules."""

from dd_agent_poc.core.settings import AWSSettings, TopologySettings, get_settings

__all__ = [
    "AWSSettings",
    "TopologySettings",
    "get_settings",
]
