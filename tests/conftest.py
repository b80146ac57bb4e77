from __future__ import annotations

import json
import re
from typing import Any, Callable, Iterator

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import Field

from navia.core.config.models import AgentConfig, AssistantConfig
from navia.core.contracts.agent import DOMAINS
from navia.orchestrator.deps import Services, build_services

AGENT_MARKERS = {
    "finance": "Finance Agent",
    "career": "Career Agent",
    "daily_task": "Daily Task Agent",
}


class ScriptedChatModel(BaseChatModel):
    """Test-only chat model: `handler` maps the prompt messages to the reply text (or raises)."""

    handler: Callable[[list[BaseMessage]], str]
    calls: list[list[BaseMessage]] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _generate(self, messages, stop=None, run_manager=None, **kwargs: Any) -> ChatResult:
        self.calls.append(list(messages))
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=self.handler(messages)))])

    def _stream(self, messages, stop=None, run_manager=None, **kwargs: Any) -> Iterator[ChatGenerationChunk]:
        self.calls.append(list(messages))
        for token in re.findall(r"\S+\s*", self.handler(messages)):
            yield ChatGenerationChunk(message=AIMessageChunk(content=token))


def system_text(messages: list[BaseMessage]) -> str:
    return str(messages[0].content) if messages and messages[0].type == "system" else ""


def last_human(messages: list[BaseMessage]) -> str:
    for m in reversed(messages):
        if m.type == "human":
            return str(m.content)
    return ""


def agent_answer(domain: str, **overrides: Any) -> dict[str, Any]:
    answer = {
        "summary": f"Here is some calm, practical {domain} guidance for you, one small piece at a time.",
        "needsBreakdown": False,
        "complexity": 3,
        "confidence": 0.9,
        "resources": [],
        "sources": [],
    }
    answer.update(overrides)
    return answer


def scripted_handler(
    intent: Any = None,
    agents: dict[str, Any] | None = None,
    breakdown: Any = None,
    companion: Any = "You're doing great. Let's take one tiny step together.",
) -> Callable[[list[BaseMessage]], str]:
    """Reply by which prompt is asking. Values may be dicts (sent as JSON), strings, exceptions or callables of the human text."""
    agents = agents or {}

    def _resolve(value: Any, human: str) -> str:
        if callable(value) and not isinstance(value, type):
            value = value(human)
        if isinstance(value, Exception):
            raise value
        return value if isinstance(value, str) else json.dumps(value)

    def handler(messages: list[BaseMessage]) -> str:
        system, human = system_text(messages), last_human(messages)
        if system.startswith("You are the intent router"):
            return _resolve(intent if intent is not None else {"domains": ["daily_task"], "confidence": 0.8}, human)
        if system.startswith("You break overwhelming tasks"):
            default = {"breakdown": ["Open a blank note", "Write one sentence", "Send it"], "complexity": 4}
            return _resolve(breakdown if breakdown is not None else default, human)
        if system.startswith("You are Navia, a companion"):
            return _resolve(companion, human)
        for domain, marker in AGENT_MARKERS.items():
            if marker in system:
                return _resolve(agents.get(domain, agent_answer(domain)), human)
        raise AssertionError(f"Unexpected prompt: {system[:80]}")

    return handler


@pytest.fixture
def make_llm() -> Callable[..., ScriptedChatModel]:
    def _make(**script: Any) -> ScriptedChatModel:
        return ScriptedChatModel(handler=scripted_handler(**script))

    return _make


@pytest.fixture
def embeddings() -> DeterministicFakeEmbedding:
    return DeterministicFakeEmbedding(size=32)


@pytest.fixture
def assistant_config() -> AssistantConfig:
    # no data_sources: every store runs in memory
    return AssistantConfig(
        assistant_id="navia-test",
        agents=[AgentConfig(domain=d, name=f"{d}_agent") for d in DOMAINS],
    )


@pytest.fixture
def make_services(assistant_config, embeddings) -> Callable[..., Services]:
    def _make(llm: BaseChatModel, config: AssistantConfig | None = None) -> Services:
        return build_services(config or assistant_config, llm=llm, fast_llm=llm, embeddings=embeddings)

    return _make
