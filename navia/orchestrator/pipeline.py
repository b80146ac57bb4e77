"""Orchestrator: classify, retrieve, dispatch, aggregate, persist, extract tasks."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from navia.agent.base import DomainAgent
from navia.core.config.models import AssistantConfig
from navia.core.contracts.agent import DomainResponse
from navia.core.contracts.orchestrator import IntentResult, OrchestrationResult
from navia.core.contracts.records import ChatTurn
from navia.data_access.relational.base import MessageStore
from navia.orchestrator.classifier import IntentClassifier
from navia.orchestrator.executor import AgentOutcome, run_agents
from navia.orchestrator.reporter import (
    APOLOGY_MESSAGE,
    combine_summaries,
    merge_resources,
    merge_sources,
    pick_primary,
)
from navia.orchestrator.retriever import HybridRetriever
from navia.orchestrator.session import SessionRecorder, SessionSequencer
from navia.orchestrator.tasks import TaskExtractor

log = logging.getLogger("orchestrator")


def _preview(text: str, max_len: int = 200) -> str:
    return (text[:max_len] + "…") if len(text) > max_len else text


def _as_dicts(turns: list[Any] | None) -> list[dict[str, str]]:
    out = []
    for t in turns or []:
        if isinstance(t, dict):
            out.append({"role": t["role"], "content": t["content"]})
        else:
            out.append({"role": t.role, "content": t.content})
    return out


class Orchestrator:
    def __init__(
        self,
        config: AssistantConfig,
        classifier: IntentClassifier,
        retriever: HybridRetriever,
        agents: dict[str, DomainAgent],
        messages: MessageStore,
        recorder: SessionRecorder,
        extractor: TaskExtractor,
        sequencer: SessionSequencer | None = None,
    ) -> None:
        self.config = config
        self.classifier = classifier
        self.retriever = retriever
        self.agents = agents
        self.messages = messages
        self.recorder = recorder
        self.extractor = extractor
        self.sequencer = sequencer or SessionSequencer()

    async def handle(
        self,
        user_id: str,
        query: str,
        session_id: str,
        user_context: dict[str, Any] | None = None,
        session_turns: list[Any] | None = None,
    ) -> OrchestrationResult:
        """Single entry point for a query. Never raises; failures come back as success=False."""
        start = time.perf_counter()
        slot = self.sequencer.take(user_id, session_id)
        persisted: list[ChatTurn] = []
        try:
            return await self._handle(
                user_id, query, session_id, user_context or {}, _as_dicts(session_turns), slot, start, persisted
            )
        except Exception:
            log.exception("Orchestration failed for session %s", session_id)
            if persisted:
                # the answer is already stored; do not record a second turn for the same message
                turn = persisted[0]
            else:
                await slot.wait_turn()
                turn = await asyncio.shield(
                    self.recorder.record_turn(
                        user_id=user_id,
                        session_id=session_id,
                        query=query,
                        response_text=APOLOGY_MESSAGE,
                        domain=self.config.default_domain,
                        metadata={"error": "orchestration_failed"},
                    )
                )
            return OrchestrationResult(
                success=False,
                combined_summary=APOLOGY_MESSAGE,
                metadata={
                    "domains": [],
                    "execution_time": int((time.perf_counter() - start) * 1000),
                    "session_id": session_id,
                    "is_first_message": turn.is_first_message,
                    "message_id": turn.message_id,
                },
            )
        finally:
            slot.release()

    async def _handle(
        self, user_id, query, session_id, user_context, session_turns, slot, start, persisted
    ) -> OrchestrationResult:
        log.info("QUERY [%s/%s]: %s", user_id, session_id, _preview(query))
        depth = self.config.retrieval.history_depth

        recent, previous_domain = await self._recent_exchange(user_id, session_id, session_turns, depth)
        intent = await self.classifier.classify(query, recent, depth, previous_domain=previous_domain)
        domains = self._routable(intent)
        primary_domain = domains[0]

        try:
            context = await self.retriever.retrieve(user_id, query, primary_domain, session_id, session_turns)
        except Exception as e:
            log.warning("Retrieval failed, answering with session turns only: %s", e)
            context = list(session_turns)

        outcomes = await run_agents(
            self.agents, domains, query, context, user_context, timeout_s=self.config.llm.agent_timeout_s
        )
        responses = [o.response for o in outcomes if o.ok]
        success = bool(responses)
        primary = pick_primary(responses, primary_domain)
        if success:
            combined = combine_summaries(responses)
        else:
            log.warning("All agents failed for %s", domains)
            combined = APOLOGY_MESSAGE

        # persistence is ordered per session and must outlive a cancelled request
        await slot.wait_turn()
        first = await self.recorder.is_first_message(user_id, session_id)
        turn = await asyncio.shield(
            self.recorder.record_turn(
                user_id=user_id,
                session_id=session_id,
                query=query,
                response_text=combined,
                domain=primary.domain if primary else primary_domain,
                is_first_message=first,
                metadata=self._turn_metadata(intent, responses, outcomes),
            )
        )
        persisted.append(turn)
        slot.release()

        task_ids = await self._extract_task(user_id, query, primary)
        max_res = self.config.retrieval.max_resources
        max_src = self.config.retrieval.max_sources
        result = OrchestrationResult(
            success=success,
            responses=responses,
            combined_summary=combined,
            resources=merge_resources(responses, max_res),
            sources=merge_sources(responses, max_src),
            breakdown=(primary.breakdown or None) if primary else None,
            breakdown_tips=list(primary.breakdown_tips) if primary and primary.breakdown else [],
            task_ids=task_ids,
            metadata={
                "domains": domains,
                "complexity": max([r.metadata.complexity for r in responses], default=intent.complexity),
                "execution_time": int((time.perf_counter() - start) * 1000),
                "session_id": session_id,
                "is_first_message": turn.is_first_message,
                "message_id": turn.message_id,
                "confidence": intent.confidence,
                "intent_fallback": intent.fallback,
                "needs_breakdown": self._breakdown_pending(intent, responses),
                "agents": {o.domain: {"status": o.status, "latency_ms": o.latency_ms} for o in outcomes},
            },
        )
        log.info("ANSWER (%s ms): %s", result.metadata["execution_time"], _preview(combined, 300))
        return result

    async def _recent_exchange(
        self, user_id: str, session_id: str, session_turns: list[dict[str, str]], depth: int
    ) -> tuple[list[dict[str, str]], str | None]:
        """Recent turns for the classifier plus the domain of the session's last stored exchange."""
        try:
            stored = await self.messages.list_turns(user_id, session_id=session_id, newest_first=True, limit=max(depth, 1))
        except Exception as e:
            log.warning("Could not load session %s history: %s", session_id, e)
            stored = []
        previous_domain = stored[0].domain if stored else None
        if session_turns:
            return session_turns, previous_domain
        recent: list[dict[str, str]] = []
        for t in reversed(stored):
            recent.extend(t.as_messages())
        return recent, previous_domain

    def _routable(self, intent: IntentResult) -> list[str]:
        domains = [d for d in intent.domains if d in self.agents]
        if domains:
            return domains
        fallback = self.config.default_domain if self.config.default_domain in self.agents else next(iter(self.agents))
        log.warning("No enabled agent for %s, using %s", intent.domains, fallback)
        return [fallback]

    @staticmethod
    def _breakdown_pending(intent: IntentResult, responses: list[DomainResponse]) -> bool:
        """True when a breakdown would help but none came back, so the caller can offer one."""
        if any(r.metadata.needs_breakdown and not r.breakdown for r in responses):
            return True
        return intent.needs_breakdown and not any(r.breakdown for r in responses)

    async def _extract_task(self, user_id: str, query: str, primary: DomainResponse | None) -> list[str]:
        if primary is None or not primary.breakdown:
            return []
        try:
            task_id = await self.extractor.extract_if_needed(user_id, primary.domain, primary, query)
        except Exception:
            log.exception("Task extraction failed")
            return []
        return [task_id] if task_id else []

    @staticmethod
    def _turn_metadata(
        intent: IntentResult, responses: list[DomainResponse], outcomes: list[AgentOutcome]
    ) -> dict[str, Any]:
        return {
            "domains": [o.domain for o in outcomes],
            "failed_domains": [o.domain for o in outcomes if not o.ok],
            "complexity": max([r.metadata.complexity for r in responses], default=intent.complexity),
            "had_breakdown": any(r.has_breakdown for r in responses),
        }
