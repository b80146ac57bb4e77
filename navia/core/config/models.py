from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from navia.core.contracts.agent import DEFAULT_DOMAIN, DOMAINS


class LLMConfig(BaseModel):
    chat_model: str = "gpt-4o-mini"
    fast_model: str = "gpt-4o-mini"  # used for complexity checks and classification
    embedding_model: str = "text-embedding-3-small"
    temperature: float = 0.3
    request_timeout_s: float = 60.0
    agent_timeout_s: float = 90.0  # one agent's whole respond() call, including a breakdown follow-up


class RetrievalConfig(BaseModel):
    semantic_top_k: int = 3
    history_depth: int = 6  # turns of session history shown to the classifier
    max_resources: int = 10
    max_sources: int = 8


class AgentConfig(BaseModel):
    domain: str
    name: str
    system_prompt: str = ""  # empty -> built-in prompt for the domain
    guardrails: list[str] = Field(default_factory=list)
    enabled: bool = True

    @model_validator(mode="after")
    def _known_domain(self) -> "AgentConfig":
        if self.domain not in DOMAINS:
            raise ValueError(f"Unknown domain {self.domain!r}; expected one of {', '.join(DOMAINS)}")
        return self


class DataSourceConfig(BaseModel):
    id: str  # "messages" | "tasks" | "semantic"
    type: str  # "rel_db" | "vector_db"
    engine: str  # "postgres" | "chroma" | "memory"
    connection_id: str | None = None  # env var name
    collection_name: str | None = None  # for chroma


class AssistantConfig(BaseModel):
    assistant_id: str
    assistant_name: str = "Navia"
    env_file_path: str | None = None
    default_domain: str = DEFAULT_DOMAIN
    llm: LLMConfig = Field(default_factory=LLMConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    agents: list[AgentConfig] = Field(default_factory=list)
    data_sources: list[DataSourceConfig] = Field(default_factory=list)

    def get_agent(self, domain: str) -> AgentConfig | None:
        for a in self.agents:
            if a.domain == domain and a.enabled:
                return a
        return None

    def get_data_source(self, source_id: str) -> DataSourceConfig | None:
        for ds in self.data_sources:
            if ds.id == source_id:
                return ds
        return None

    @property
    def enabled_domains(self) -> list[str]:
        return [a.domain for a in self.agents if a.enabled]
