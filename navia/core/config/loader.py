import json
import os
from pathlib import Path

from navia.core.config.env import load_env_from_path
from navia.core.config.models import AssistantConfig
from navia.core.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "config/assistant.json"


def resolve_config_path() -> str:
    return os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)


def load_assistant_config(config_path: str | Path | None = None, project_root: Path | None = None) -> AssistantConfig:
    root = project_root or Path.cwd()
    path = Path(config_path or resolve_config_path())
    if not path.is_absolute():
        path = root / path
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    try:
        config = AssistantConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid config schema in {path}: {e}") from e
    if not config.enabled_domains:
        raise ConfigError(f"No enabled agents in {path}")
    if config.default_domain not in config.enabled_domains:
        raise ConfigError(f"default_domain {config.default_domain!r} has no enabled agent in {path}")
    load_env_from_path(config.env_file_path, root)
    return config
