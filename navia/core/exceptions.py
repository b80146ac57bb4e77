class ConfigError(Exception):
    """Raised when config loading or validation fails."""


class AgentUnavailable(Exception):
    """Raised when a domain agent's completion call fails or times out."""


class StorageError(Exception):
    """Raised by a store when a read or write cannot be completed."""


class TaskNotFound(StorageError):
    """Raised when a task id does not exist for the user."""


class InvalidTaskTransition(Exception):
    """Raised when a task status change is not an allowed transition."""
