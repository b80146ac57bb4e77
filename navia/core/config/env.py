import os
from pathlib import Path

from dotenv import load_dotenv

from navia.core.exceptions import ConfigError

# Searched in order when no env_file_path is configured
DEFAULT_ENV_FILES = ("config/env/.env", ".env")


def load_env_from_path(env_file_path: str | None, project_root: Path | None = None) -> Path | None:
    """Load a dotenv file without overriding variables that are already set. Returns the file used."""
    root = project_root or Path.cwd()
    candidates = [env_file_path] if env_file_path else list(DEFAULT_ENV_FILES)
    for candidate in candidates:
        path = root / candidate
        if path.exists():
            load_dotenv(path, override=False)
            return path
    return None


def require_env(name: str | None, purpose: str) -> str:
    """Value of a connection env var; ConfigError when it is unset or empty."""
    if not name:
        raise ConfigError(f"No connection_id configured for {purpose}")
    value = os.environ.get(name, "").strip()
    if not value:
        raise ConfigError(f"{name} not set ({purpose})")
    return value
