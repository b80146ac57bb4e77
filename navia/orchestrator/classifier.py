"""Intent classification: query (+ recent turns) -> ranked domains, primary first."""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder

from navia.agent.breakdown import contains_breakdown_keywords
from navia.agent.prompts import CLASSIFIER_PROMPT
from navia.core.contracts.agent import DEFAULT_DOMAIN, DOMAINS
from navia.core.contracts.orchestrator import IntentResult
from navia.core.llm import message_text, parse_json_output, to_langchain_messages

log = logging.getLogger("classifier")

ROUTING_KEYWORDS: dict[str, tuple[str, ...]] = {
    "finance": (
        "budget", "money", "spending", "bill", "debt", "loan", "credit", "financial aid", "saving",
        "cost", "benefit", "bank", "payment", "income", "tax",
    ),
    "career": (
        "job", "work", "employ", "hiring", "resume", "interview", "promotion", "offer", "salary",
        "application", "career", "linkedin", "ada", "accommodation", "professor", "recommendation",
    ),
    "daily_task": (
        "task", "organize", "routine", "focus", "stuck", "overwhelmed", "executive function",
        "procrastinat", "schedule", "time", "remind", "plan", "email",
    ),
}

FOLLOW_UP_INDICATORS = (
    "which one",
    "what about that",
    "what about it",
    "tell me more",
    "can you suggest",
    "how do i do that",
    "what should i",
    "is it good",
    "what's the best",
    "what else",
    "and then",
)
PRONOUN_LEAD_RE = re.compile(r"^(and |so |but )?(it|that|this|those|these|them|they|one)\b", re.IGNORECASE)
FOLLOW_UP_MAX_WORDS = 8


def is_follow_up(query: str) -> bool:
    """Short, vague query that only makes sense against the previous exchange."""
    q = query.strip().lower()
    if len(q.split()) >= FOLLOW_UP_MAX_WORDS:
        return False
    return any(ind in q for ind in FOLLOW_UP_INDICATORS) or bool(PRONOUN_LEAD_RE.match(q))


def keyword_domain(turns: Iterable[Any]) -> str | None:
    """Domain whose routing keywords best match the most recent turn that matches any; ties go to DOMAINS order."""
    for turn in reversed(list(turns)):
        text = (turn["content"] if isinstance(turn, dict) else turn.content).lower()
        scores = {d: sum(1 for k in ROUTING_KEYWORDS[d] if k in text) for d in DOMAINS}
        best = max(DOMAINS, key=lambda d: scores[d])
        if scores[best]:
            return best
    return None


def _clean_domains(raw: Any, allowed: Iterable[str]) -> list[str]:
    allowed = set(allowed)
    domains: list[str] = []
    for d in raw if isinstance(raw, list) else [raw]:
        tag = str(d or "").strip().lower().replace("-", "_")
        if tag in allowed and tag not in domains:
            domains.append(tag)
    return domains


class IntentClassifier:
    def __init__(self, llm: BaseChatModel, domains: Iterable[str] = DOMAINS, default_domain: str = DEFAULT_DOMAIN) -> None:
        self.llm = llm
        self.domains = tuple(domains)
        self.default_domain = default_domain

    def fallback(self, reason: str) -> IntentResult:
        return IntentResult(domains=[self.default_domain], confidence=0.5, reasoning=reason, fallback=True)

    async def classify(
        self,
        query: str,
        recent_turns: list[Any],
        history_depth: int,
        previous_domain: str | None = None,
    ) -> IntentResult:
        """Never raises: any failure yields the default domain.

        previous_domain is the domain of the session's last persisted exchange, when known; follow-up
        queries stay there instead of being routed from scratch.
        """
        history = list(recent_turns)[-history_depth:] if history_depth > 0 else []
        prompt = ChatPromptTemplate.from_messages([
            ("system", "{system}"),
            MessagesPlaceholder(variable_name="history", optional=True),
            ("human", "CURRENT QUERY: {query}"),
        ])
        try:
            out = await (prompt | self.llm).ainvoke({
                "system": CLASSIFIER_PROMPT,
                "history": to_langchain_messages(history),
                "query": query,
            })
            data = parse_json_output(message_text(out))
        except Exception as e:
            log.warning("Classification failed, defaulting to %s: %s", self.default_domain, e)
            return self.fallback("classification failed")

        domains = _clean_domains(data.get("domains"), self.domains)
        if not domains:
            log.warning("Classifier returned no usable domain: %r", data.get("domains"))
            return self.fallback("no usable domain")

        if history and is_follow_up(query):
            carried = previous_domain if previous_domain in self.domains else keyword_domain(history[-2:])
            if carried and carried != domains[0]:
                log.info("Follow-up query, keeping %s as primary (model said %s)", carried, domains[0])
                domains = [carried] + [d for d in domains if d != carried]

        try:
            complexity = max(0, min(10, int(data.get("complexity") or 5)))
            confidence = float(data.get("confidence") or 0.7)
        except (TypeError, ValueError):
            complexity, confidence = 5, 0.7
        result = IntentResult(
            domains=domains,
            confidence=confidence,
            needs_breakdown=bool(data.get("needsBreakdown")) or contains_breakdown_keywords(query),
            complexity=complexity,
            reasoning=str(data.get("reasoning") or ""),
        )
        log.info("INTENT %s (confidence %.2f): %s", result.domains, result.confidence, result.reasoning)
        return result
