"""Dispatch table: domain tag -> DomainAgent. The orchestrator only ever looks agents up here."""
from __future__ import annotations

from langchain_core.language_models.chat_models import BaseChatModel

from navia.agent.base import DomainAgent
from navia.agent.career import CareerAgent
from navia.agent.daily_task import DailyTaskAgent
from navia.agent.finance import FinanceAgent
from navia.core.config.models import AssistantConfig

AGENT_CLASSES: dict[str, type[DomainAgent]] = {
    "finance": FinanceAgent,
    "career": CareerAgent,
    "daily_task": DailyTaskAgent,
}


def build_agents(
    config: AssistantConfig,
    llm: BaseChatModel,
    fast_llm: BaseChatModel | None = None,
) -> dict[str, DomainAgent]:
    """One agent per enabled AgentConfig, keyed by domain."""
    agents: dict[str, DomainAgent] = {}
    for agent_config in config.agents:
        if not agent_config.enabled:
            continue
        agents[agent_config.domain] = AGENT_CLASSES[agent_config.domain](agent_config, llm, fast_llm)
    return agents
