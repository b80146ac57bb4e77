from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DOMAINS = ("finance", "career", "daily_task")
DEFAULT_DOMAIN = "daily_task"

DOMAIN_LABELS = {
    "finance": "Finance Guidance",
    "career": "Career Guidance",
    "daily_task": "Task Management Guidance",
}


class ResourceLink(BaseModel):
    title: str
    url: str = ""
    description: str = ""
    type: str = "article"  # "article" | "tool" | "guide" | "template" | "video"


class SourceReference(BaseModel):
    title: str
    url: str | None = None
    excerpt: str = ""
    relevance: float | None = None


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    complexity: int = 5
    needs_breakdown: bool = Field(default=False, alias="needsBreakdown")
    confidence: float | None = None
    degraded: bool = False  # True when the agent fell back to unstructured output


class DomainResponse(BaseModel):
    """One agent's answer. Only summary and breakdown are ever persisted (as ChatTurn / Task)."""

    model_config = ConfigDict(populate_by_name=True)

    domain: str
    summary: str
    breakdown: list[str] | None = None
    breakdown_tips: list[str] = Field(default_factory=list, alias="breakdownTips")
    resources: list[ResourceLink] = Field(default_factory=list)
    sources: list[SourceReference] = Field(default_factory=list)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    @property
    def has_breakdown(self) -> bool:
        return bool(self.breakdown)

    def summary_preview(self, max_len: int = 150) -> str:
        return (self.summary[:max_len] + "…") if len(self.summary) > max_len else self.summary

