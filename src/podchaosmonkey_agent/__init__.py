"""pod chaos monkey agent runtime helpers."""

from .config import AgentConfig, ConfigurationError, load_config  # noqa: F401

__all__ = [
    "AgentConfig",
    "ConfigurationError",
    "load_config",
]
