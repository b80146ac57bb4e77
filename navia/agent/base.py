"""DomainAgent: the one polymorphic seam. Each domain answers respond(query, context, user_context)."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from pydantic import ValidationError as PydanticValidationError

from navia.agent.breakdown import (
    BreakdownResult,
    as_list,
    contains_breakdown_keywords,
    ef_specific_tips,
    explicitly_requests_breakdown,
    generate_breakdown,
    is_simple_greeting,
    simplify_for_low_energy,
)
from navia.agent.guardrails import apply_guardrails
from navia.agent.prompts import DOMAIN_PROMPTS, RESPONSE_FORMAT
from navia.core.config.models import AgentConfig
from navia.core.contracts.agent import DomainResponse, ResourceLink, ResponseMetadata, SourceReference
from navia.core.exceptions import AgentUnavailable
from navia.core.llm import message_text, parse_json_output, to_langchain_messages

MAX_AGENT_RESOURCES = 8
MAX_AGENT_SOURCES = 5

KeywordResources = list[tuple[tuple[str, ...], ResourceLink]]


def keyword_resources(query: str, table: KeywordResources) -> list[ResourceLink]:
    lowered = query.lower()
    return [link for keywords, link in table if any(k in lowered for k in keywords)]


def _coerce(items: Any, model: type) -> list:
    out = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        try:
            out.append(model.model_validate(item))
        except PydanticValidationError:
            continue
    return out


def _clean_steps(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    steps = []
    for s in raw:
        # models sometimes return {"title": ..., "subSteps": [...]} instead of plain strings
        text = (s.get("title") or s.get("action") or "") if isinstance(s, dict) else s
        text = str(text).strip()
        if text:
            steps.append(text)
    return steps


class DomainAgent(ABC):
    domain: str = ""
    breakdown_context: str = ""
    fallback_summary: str = "Here's some support for your question."

    def __init__(self, config: AgentConfig, llm: BaseChatModel, fast_llm: BaseChatModel | None = None) -> None:
        self.config = config
        self.llm = llm
        self.fast_llm = fast_llm or llm
        self.log = logging.getLogger(f"agent.{self.domain}")

    @property
    def system_prompt(self) -> str:
        return self.config.system_prompt or DOMAIN_PROMPTS[self.domain]

    @abstractmethod
    def curated_resources(self, query: str, user_context: dict[str, Any]) -> list[ResourceLink]:
        """Static, keyword-selected links this domain always offers."""

    def sub_topic(self, query: str) -> str:
        return "general"

    async def respond(
        self,
        query: str,
        context: list[dict[str, str]],
        user_context: dict[str, Any] | None = None,
    ) -> DomainResponse:
        """Answer one query. Raises AgentUnavailable when the completion call itself fails."""
        user_context = user_context or {}
        greeting = is_simple_greeting(query)
        planned: BreakdownResult | None = None
        if not greeting and explicitly_requests_breakdown(query):
            self.log.info("Explicit breakdown request, generating plan")
            planned = await generate_breakdown(
                self.fast_llm, query, self.breakdown_context, as_list(user_context.get("ef_profile"))
            )

        prompt = ChatPromptTemplate.from_messages([
            ("system", "{system}"),
            MessagesPlaceholder(variable_name="history", optional=True),
            ("human", "{input}"),
        ])
        try:
            out = await (prompt | self.llm).ainvoke({
                "system": f"{self.system_prompt}\n\n{RESPONSE_FORMAT}",
                "history": to_langchain_messages(context),
                "input": self._build_input(query, user_context, planned),
            })
        except Exception as e:
            raise AgentUnavailable(f"{self.domain} completion failed: {e}") from e

        text = message_text(out)
        try:
            data = parse_json_output(text)
            response = await self._build_response(query, data, planned, user_context, greeting)
        except (ValueError, TypeError, PydanticValidationError) as e:
            self.log.warning("Malformed structured output, degrading: %s", e)
            return self.degraded_response(text)
        return apply_guardrails(response, self.config.guardrails)

    def degraded_response(self, raw_text: str) -> DomainResponse:
        """Single-item response from unparseable output: the raw text as summary, nothing else."""
        return DomainResponse(
            domain=self.domain,
            summary=raw_text.strip(),
            metadata=ResponseMetadata(confidence=0.3, degraded=True),
        )

    def _build_input(self, query: str, user_context: dict[str, Any], planned: BreakdownResult | None) -> str:
        parts = [f'USER QUERY: "{query}"']
        if user_context:
            parts.append(
                "USER CONTEXT:\n"
                f"- Energy level: {user_context.get('energy_level') or 'unknown'}\n"
                f"- EF profile: {', '.join(as_list(user_context.get('ef_profile'))) or 'not provided'}\n"
                f"- Goals: {', '.join(as_list(user_context.get('current_goals'))) or 'not provided'}"
            )
        energy = user_context.get("energy_level")
        if energy == "low":
            parts.append("IMPORTANT: the user has LOW ENERGY. Keep it minimal and prioritise rest and self-compassion.")
        elif energy == "high":
            parts.append("The user has HIGH ENERGY and can handle more detailed guidance.")
        if planned:
            steps = "\n".join(f"{i}. {s}" for i, s in enumerate(planned.breakdown, 1))
            parts.append(
                f"A STEP-BY-STEP PLAN WAS ALREADY CREATED:\n{steps}\n"
                "Copy these steps into the \"breakdown\" field. In the summary, only mention that a plan is below; do not repeat the steps."
            )
        return "\n\n".join(parts)

    async def _build_response(
        self,
        query: str,
        data: dict[str, Any],
        planned: BreakdownResult | None,
        user_context: dict[str, Any],
        greeting: bool,
    ) -> DomainResponse:
        needs_breakdown = (bool(data.get("needsBreakdown")) or contains_breakdown_keywords(query)) and not greeting
        complexity = max(0, min(10, int(data.get("complexity") or 5)))
        breakdown: list[str] = []
        tips: list[str] = []
        if planned:
            # the pre-generated plan wins over anything the model put in its own breakdown field
            breakdown, tips = list(planned.breakdown), list(planned.tips)
            needs_breakdown = True
            complexity = max(complexity, planned.complexity)
        elif needs_breakdown:
            breakdown = _clean_steps(data.get("breakdown"))
            tips = [str(t) for t in data.get("breakdownTips") or []]
            if not breakdown:
                self.log.info("Answer flagged a breakdown without steps, generating plan")
                deferred = await generate_breakdown(
                    self.fast_llm, query, self.breakdown_context, as_list(user_context.get("ef_profile"))
                )
                breakdown, tips = list(deferred.breakdown), tips or list(deferred.tips)
                complexity = max(complexity, deferred.complexity)
        if breakdown:
            if user_context.get("energy_level") == "low":
                breakdown = simplify_for_low_energy(breakdown)
            tips = tips or ef_specific_tips(as_list(user_context.get("ef_profile")))

        resources = self.curated_resources(query, user_context) + _coerce(data.get("resources"), ResourceLink)
        sources = _coerce(data.get("sources"), SourceReference)
        metadata = ResponseMetadata(
            complexity=complexity,
            needs_breakdown=needs_breakdown,
            confidence=float(data.get("confidence") or 0.8),
            sub_topic=self.sub_topic(query),
            energy_level=user_context.get("energy_level"),
        )
        return DomainResponse(
            domain=self.domain,
            summary=str(data.get("summary") or "").strip() or self.fallback_summary,
            breakdown=breakdown or None,
            breakdown_tips=tips,
            resources=resources[:MAX_AGENT_RESOURCES],
            sources=sources[:MAX_AGENT_SOURCES],
            metadata=metadata,
        )
