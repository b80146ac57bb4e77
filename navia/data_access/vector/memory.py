from __future__ import annotations

from typing import Any, Callable

from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import InMemoryVectorStore

from navia.data_access.vector.base import SemanticIndex


class InMemorySemanticIndex(SemanticIndex):
    def __init__(self, embedding: Embeddings) -> None:
        super().__init__(InMemoryVectorStore(embedding=embedding))

    def build_filter(self, conditions: dict[str, Any]) -> Callable[[Document], bool]:
        def _match(doc: Document) -> bool:
            return all(doc.metadata.get(k) == v for k, v in conditions.items())

        return _match
