"""Guardrails from agent config: rules such as "max 220 words" or "max 8 steps" applied to a DomainResponse."""
from __future__ import annotations

import re

from navia.core.contracts.agent import DomainResponse

RULE_RE = re.compile(r"\bmax(?:imum)?\s+(\d+)\s+(word|step|resource|source)s?\b", re.IGNORECASE)


def parse_limits(guardrails: list[str] | None) -> dict[str, int]:
    limits: dict[str, int] = {}
    for rule in guardrails or []:
        for count, unit in RULE_RE.findall(rule):
            limits[unit.lower()] = int(count)
    return limits


def truncate_words(text: str, max_words: int) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


def apply_guardrails(response: DomainResponse, guardrails: list[str] | None) -> DomainResponse:
    limits = parse_limits(guardrails)
    if not limits:
        return response
    update: dict = {}
    if "word" in limits and response.summary:
        update["summary"] = truncate_words(response.summary, limits["word"])
    if "step" in limits and response.breakdown:
        update["breakdown"] = response.breakdown[: limits["step"]]
    if "resource" in limits:
        update["resources"] = response.resources[: limits["resource"]]
    if "source" in limits:
        update["sources"] = response.sources[: limits["source"]]
    return response.model_copy(update=update)
