"""Persisted shapes: chat turns (relational), semantic records (vector) and tasks."""
from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

TaskStatus = Literal["not_started", "in_progress", "completed"]

TASK_TRANSITIONS: dict[str, set[str]] = {
    "not_started": {"in_progress", "completed"},
    "in_progress": {"not_started", "completed"},
    "completed": {"in_progress"},
}


def now_ms() -> int:
    return int(time.time() * 1000)


class ChatTurn(BaseModel):
    # timestamp is shared with the turn's SemanticRecord; retrieval dedups on it
    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    session_id: str
    query_text: str
    response_text: str
    domain: str
    persona: str = "orchestrator"
    timestamp: int = Field(default_factory=now_ms)
    is_error: bool = False
    is_first_message: bool = False
    session_title: str | None = None
    semantic_ref: str | None = None
    user_feedback: bool | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def as_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "user", "content": self.query_text},
            {"role": "assistant", "content": self.response_text},
        ]


class SemanticRecord(BaseModel):
    id: str
    user_namespace: str
    domain: str
    session_id: str | None = None
    content: str
    timestamp: int
    record_type: str = "chat"  # "chat" | "task"
    extracted_metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> "SemanticRecord":
        return cls(
            id=f"chat_{turn.user_id}_{turn.timestamp}",
            user_namespace=turn.user_id,
            domain=turn.domain,
            session_id=turn.session_id,
            content=f"User: {turn.query_text}\nAssistant: {turn.response_text}",
            timestamp=turn.timestamp,
            extracted_metadata={
                "query_text": turn.query_text,
                "response_text": turn.response_text,
                "persona": turn.persona,
                "message_id": turn.message_id,
            },
        )

    def as_messages(self) -> list[dict[str, str]]:
        meta = self.extracted_metadata
        query = meta.get("query_text")
        response = meta.get("response_text")
        if query is None or response is None:
            return [{"role": "assistant", "content": self.content}]
        return [
            {"role": "user", "content": str(query)},
            {"role": "assistant", "content": str(response)},
        ]


class Task(BaseModel):
    task_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    domain: str
    title: str
    breakdown: list[str]
    status: TaskStatus = "not_started"
    created_by_agent: str
    original_query: str
    summary: str = ""
    complexity: int = 5
    time_estimate_minutes: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)
