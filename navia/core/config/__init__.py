from navia.core.config.loader import load_assistant_config
from navia.core.config.models import AssistantConfig, AgentConfig, DataSourceConfig, LLMConfig, RetrievalConfig
from navia.core.config.env import load_env_from_path, require_env

__all__ = [
    "load_assistant_config",
    "AssistantConfig",
    "AgentConfig",
    "DataSourceConfig",
    "LLMConfig",
    "RetrievalConfig",
    "load_env_from_path",
    "require_env",
]
