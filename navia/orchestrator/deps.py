"""Wire config, collaborators and stores into the Orchestrator and its companions."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from langchain_core.embeddings import Embeddings
from langchain_core.language_models.chat_models import BaseChatModel

from navia.agent.breakdown import BreakdownPlanner
from navia.agent.registry import build_agents
from navia.core.config.models import AssistantConfig
from navia.core.llm import build_chat_model, build_embeddings
from navia.data_access.factory import DataClients, build_clients
from navia.orchestrator.classifier import IntentClassifier
from navia.orchestrator.pipeline import Orchestrator
from navia.orchestrator.retriever import HybridRetriever
from navia.orchestrator.session import SessionRecorder, SessionSequencer
from navia.orchestrator.streaming import StreamingChat
from navia.orchestrator.tasks import TaskExtractor


@dataclass
class Services:
    config: AssistantConfig
    orchestrator: Orchestrator
    streaming: StreamingChat
    breakdown: BreakdownPlanner
    clients: DataClients

    async def close(self) -> None:
        await self.streaming.drain()
        await self.clients.close()


def build_services(
    config: AssistantConfig,
    llm: BaseChatModel | None = None,
    fast_llm: BaseChatModel | None = None,
    embeddings: Embeddings | None = None,
    clients: DataClients | None = None,
    project_root: Path | None = None,
) -> Services:
    """Anything not passed in is built from config (OpenAI models, configured data sources)."""
    llm = llm or build_chat_model(config.llm)
    fast_llm = fast_llm or build_chat_model(config.llm, fast=True)
    if clients is None:
        clients = build_clients(config, embeddings or build_embeddings(config.llm), project_root)

    sequencer = SessionSequencer()
    retriever = HybridRetriever(clients.messages, clients.semantic, config.retrieval.semantic_top_k)
    recorder = SessionRecorder(clients.messages, clients.semantic)
    agents = build_agents(config, llm, fast_llm)
    orchestrator = Orchestrator(
        config=config,
        classifier=IntentClassifier(fast_llm, domains=list(agents), default_domain=config.default_domain),
        retriever=retriever,
        agents=agents,
        messages=clients.messages,
        recorder=recorder,
        extractor=TaskExtractor(clients.tasks, clients.semantic),
        sequencer=sequencer,
    )
    streaming = StreamingChat(llm, retriever, recorder, sequencer)
    return Services(
        config=config,
        orchestrator=orchestrator,
        streaming=streaming,
        breakdown=BreakdownPlanner(llm, fast_llm),
        clients=clients,
    )
