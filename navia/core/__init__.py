from navia.core.config.loader import load_assistant_config
from navia.core.config.models import AssistantConfig, AgentConfig, DataSourceConfig
from navia.core.exceptions import ConfigError, AgentUnavailable, StorageError

__all__ = [
    "load_assistant_config",
    "AssistantConfig",
    "AgentConfig",
    "DataSourceConfig",
    "ConfigError",
    "AgentUnavailable",
    "StorageError",
]
