from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from langchain_core.embeddings import Embeddings

from navia.core.config.env import require_env
from navia.core.config.models import AssistantConfig, DataSourceConfig
from navia.core.exceptions import ConfigError
from navia.data_access.relational.base import MessageStore, TaskStore
from navia.data_access.relational.memory import InMemoryMessageStore, InMemoryTaskStore
from navia.data_access.relational.postgres import PostgresDatabase, PostgresMessageStore, PostgresTaskStore
from navia.data_access.vector.base import SemanticIndex
from navia.data_access.vector.chroma import create_chroma_index
from navia.data_access.vector.memory import InMemorySemanticIndex


@dataclass
class DataClients:
    messages: MessageStore
    tasks: TaskStore
    semantic: SemanticIndex
    databases: list[PostgresDatabase]

    async def close(self) -> None:
        for db in self.databases:
            await db.close()


def _source(config: AssistantConfig, source_id: str, expected_type: str) -> DataSourceConfig:
    ds = config.get_data_source(source_id)
    if ds is None:
        # unconfigured stores run in memory
        return DataSourceConfig(id=source_id, type=expected_type, engine="memory")
    if ds.type != expected_type:
        raise ConfigError(f"Data source {source_id!r} must be {expected_type}, got {ds.type}")
    return ds


def build_clients(
    config: AssistantConfig,
    embeddings: Embeddings,
    project_root: Path | None = None,
) -> DataClients:
    """Build the message store, task store and semantic index named in data_sources."""
    databases: dict[str, PostgresDatabase] = {}

    def postgres(ds: DataSourceConfig) -> PostgresDatabase:
        url = require_env(ds.connection_id, f"data source {ds.id}")
        if url not in databases:
            databases[url] = PostgresDatabase(url)
        return databases[url]

    msg_ds = _source(config, "messages", "rel_db")
    if msg_ds.engine == "postgres":
        messages: MessageStore = PostgresMessageStore(postgres(msg_ds))
    elif msg_ds.engine == "memory":
        messages = InMemoryMessageStore()
    else:
        raise ConfigError(f"Unsupported engine for messages: {msg_ds.engine}")

    task_ds = _source(config, "tasks", "rel_db")
    if task_ds.engine == "postgres":
        tasks: TaskStore = PostgresTaskStore(postgres(task_ds))
    elif task_ds.engine == "memory":
        tasks = InMemoryTaskStore()
    else:
        raise ConfigError(f"Unsupported engine for tasks: {task_ds.engine}")

    vec_ds = _source(config, "semantic", "vector_db")
    if vec_ds.engine == "chroma":
        path = os.environ.get(vec_ds.connection_id or "", "")
        if path and not Path(path).is_absolute():
            path = str(((project_root or Path.cwd()) / path).resolve())
        semantic: SemanticIndex = create_chroma_index(path or None, embeddings, vec_ds.collection_name or "chat_memory")
    elif vec_ds.engine == "memory":
        semantic = InMemorySemanticIndex(embeddings)
    else:
        raise ConfigError(f"Unsupported engine for semantic: {vec_ds.engine}")

    return DataClients(messages=messages, tasks=tasks, semantic=semantic, databases=list(databases.values()))
