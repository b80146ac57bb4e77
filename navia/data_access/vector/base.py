"""Semantic Index over a LangChain vector store. Records are only ever inserted."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from langchain_core.documents import Document
from langchain_core.vectorstores import VectorStore

from navia.core.contracts.records import SemanticRecord

CORE_KEYS = ("record_id", "user_namespace", "domain", "session_id", "timestamp", "record_type")


def record_to_document(record: SemanticRecord) -> Document:
    # vector stores only accept scalar, non-null metadata values
    extracted = {
        k: v for k, v in record.extracted_metadata.items() if isinstance(v, (str, int, float, bool)) and k not in CORE_KEYS
    }
    metadata: dict[str, Any] = {
        **extracted,
        "record_id": record.id,
        "user_namespace": record.user_namespace,
        "domain": record.domain,
        "timestamp": record.timestamp,
        "record_type": record.record_type,
    }
    if record.session_id:
        metadata["session_id"] = record.session_id
    return Document(page_content=record.content, metadata=metadata)


def document_to_record(doc: Document) -> SemanticRecord:
    meta = dict(doc.metadata or {})
    core = {k: meta.pop(k, None) for k in CORE_KEYS}
    return SemanticRecord(
        id=core["record_id"] or getattr(doc, "id", None) or "",
        user_namespace=core["user_namespace"] or "",
        domain=core["domain"] or "",
        session_id=core["session_id"],
        content=doc.page_content,
        timestamp=int(core["timestamp"] or 0),
        record_type=core["record_type"] or "chat",
        extracted_metadata=meta,
    )


class SemanticIndex(ABC):
    """Per-user namespace (user_namespace metadata filter) over one vector collection."""

    def __init__(self, store: VectorStore) -> None:
        self._store = store

    async def upsert(self, record: SemanticRecord) -> str:
        await self._store.aadd_documents([record_to_document(record)], ids=[record.id])
        return record.id

    async def query(
        self,
        user_id: str,
        text: str,
        *,
        domain: str | None = None,
        session_id: str | None = None,
        record_type: str | None = "chat",
        top_k: int = 3,
    ) -> list[SemanticRecord]:
        conditions: dict[str, Any] = {"user_namespace": user_id}
        if domain:
            conditions["domain"] = domain
        if session_id:
            conditions["session_id"] = session_id
        if record_type:
            conditions["record_type"] = record_type
        docs = await self._store.asimilarity_search(text, k=top_k, filter=self.build_filter(conditions))
        return [document_to_record(d) for d in docs]

    @abstractmethod
    def build_filter(self, conditions: dict[str, Any]) -> Any:
        """Translate equality conditions into the backing store's filter form."""
