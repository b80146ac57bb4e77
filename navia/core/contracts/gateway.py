from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from navia.core.contracts.agent import ResourceLink, SourceReference
from navia.core.contracts.orchestrator import ChatMessage


class QueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    session_messages: list[ChatMessage] = Field(default_factory=list, alias="sessionMessages")
    user_context: dict[str, Any] = Field(default_factory=dict, alias="userContext")


class QueryMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    complexity: int | None = None
    execution_time: int = Field(alias="executionTime")  # ms
    session_id: str = Field(alias="sessionId")
    is_first_message: bool = Field(default=False, alias="isFirstMessage")
    message_id: str | None = Field(default=None, alias="messageId")
    needs_breakdown: bool = Field(default=False, alias="needsBreakdown")


class QueryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    summary: str
    domains: list[str] = Field(default_factory=list)
    breakdown: list[str] | None = None
    breakdown_tips: list[str] | None = Field(default=None, alias="breakdownTips")
    resources: list[ResourceLink] = Field(default_factory=list)
    sources: list[SourceReference] = Field(default_factory=list)
    task_ids: list[str] | None = Field(default=None, alias="taskIds")
    metadata: QueryMetadata


class StreamChatRequest(BaseModel):
    session_id: str = Field(min_length=1)
    messages: list[ChatMessage] = Field(min_length=1)
    context: dict[str, Any] = Field(default_factory=dict)


class FeedbackRequest(BaseModel):
    message_id: str
    feedback: bool | None = None  # None clears


class TaskStatusUpdate(BaseModel):
    status: str


class BreakdownRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task: str = Field(min_length=1)
    context: str | None = None
    auto_breakdown: bool = Field(default=False, alias="autoBreakdown")
    user_context: dict[str, Any] = Field(default_factory=dict, alias="userContext")


class BreakdownResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    needs_breakdown: bool = Field(alias="needsBreakdown")
    complexity: int
    reasoning: str = ""
    breakdown: list[str] | None = None
    estimated_time: str | None = Field(default=None, alias="estimatedTime")
    tips: list[str] = Field(default_factory=list)
    message: str | None = None
