from __future__ import annotations

from pathlib import Path
from typing import Any

import chromadb
from langchain_chroma import Chroma
from langchain_core.embeddings import Embeddings

from navia.data_access.vector.base import SemanticIndex


class ChromaSemanticIndex(SemanticIndex):
    def build_filter(self, conditions: dict[str, Any]) -> dict[str, Any]:
        # Chroma needs $and for more than one equality condition
        if len(conditions) == 1:
            return dict(conditions)
        return {"$and": [{k: v} for k, v in conditions.items()]}


def create_chroma_index(
    persist_directory: str | Path | None,
    embedding_function: Embeddings,
    collection_name: str = "chat_memory",
) -> ChromaSemanticIndex:
    """Semantic index over Chroma; persistent when a directory is given, ephemeral otherwise."""
    if persist_directory:
        path = Path(persist_directory)
        path.mkdir(parents=True, exist_ok=True)
        client = chromadb.PersistentClient(path=str(path))
    else:
        client = chromadb.EphemeralClient()
    vectorstore = Chroma(
        client=client,
        collection_name=collection_name,
        embedding_function=embedding_function,
    )
    return ChromaSemanticIndex(vectorstore)
