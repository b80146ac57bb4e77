from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from navia.core.contracts.agent import DEFAULT_DOMAIN, DomainResponse, ResourceLink, SourceReference


class ChatMessage(BaseModel):
    role: str  # "user" | "assistant" | "system"
    content: str


class IntentResult(BaseModel):
    domains: list[str] = Field(default_factory=lambda: [DEFAULT_DOMAIN], min_length=1)
    confidence: float = 0.7
    needs_breakdown: bool = False
    complexity: int = 5
    reasoning: str = ""
    fallback: bool = False  # True when classification failed and the default domain was used

    @property
    def primary(self) -> str:
        return self.domains[0]


class OrchestrationResult(BaseModel):
    success: bool
    responses: list[DomainResponse] = Field(default_factory=list)
    combined_summary: str = ""
    resources: list[ResourceLink] = Field(default_factory=list)
    sources: list[SourceReference] = Field(default_factory=list)
    breakdown: list[str] | None = None
    breakdown_tips: list[str] = Field(default_factory=list)
    task_ids: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def domains(self) -> list[str]:
        return list(self.metadata.get("domains", []))
