"""Aggregate agent responses into one answer, and judge whether an answer is an error."""
from __future__ import annotations

import logging
from typing import Iterable

from navia.core.contracts.agent import DOMAIN_LABELS, DomainResponse, ResourceLink, SourceReference

log = logging.getLogger("reporter")

APOLOGY_MESSAGE = (
    "I encountered an issue processing your question. "
    "Please try rephrasing or breaking it into smaller parts."
)

# Approximate: a legitimate answer that quotes one of these phrases is also flagged.
ERROR_PHRASES = (
    "encountered an issue",
    "error processing",
    "please try rephrasing",
    "api error",
    "rate limit",
    "quota exceeded",
)
MIN_ANSWER_LENGTH = 20

TWO_DOMAIN_INTRO = "I've analyzed your question from multiple perspectives. Here's comprehensive guidance:"
MANY_DOMAIN_INTRO = "Your question touches on several areas. Here's what I can help with:"
SECTION_SEPARATOR = "\n\n---\n\n"


def is_error_response(summary: str | None) -> bool:
    """Heuristic: empty, suspiciously short, or containing a known failure phrase."""
    if not summary or not summary.strip():
        return True
    lowered = summary.lower()
    if any(p in lowered for p in ERROR_PHRASES):
        return True
    return len(summary.strip()) < MIN_ANSWER_LENGTH


def combine_summaries(responses: list[DomainResponse]) -> str:
    if not responses:
        return ""
    if len(responses) == 1:
        return responses[0].summary
    sections = SECTION_SEPARATOR.join(
        f"{DOMAIN_LABELS.get(r.domain, r.domain)}:\n{r.summary}" for r in responses
    )
    intro = TWO_DOMAIN_INTRO if len(responses) == 2 else MANY_DOMAIN_INTRO
    return f"{intro}\n\n{sections}"


def merge_resources(responses: Iterable[DomainResponse], limit: int) -> list[ResourceLink]:
    """Concatenate in response order, first occurrence wins; identity is the URL, else the title."""
    seen: set[str] = set()
    merged: list[ResourceLink] = []
    for r in responses:
        for link in r.resources:
            key = (link.url or link.title).strip().lower()
            if key and key not in seen:
                seen.add(key)
                merged.append(link)
    return merged[:limit]


def merge_sources(responses: Iterable[DomainResponse], limit: int) -> list[SourceReference]:
    seen: set[str] = set()
    merged: list[SourceReference] = []
    for r in responses:
        for src in r.sources:
            key = (src.url or src.title).strip().lower()
            if key and key not in seen:
                seen.add(key)
                merged.append(src)
    return merged[:limit]


def pick_primary(responses: list[DomainResponse], primary_domain: str) -> DomainResponse | None:
    """The classified primary domain's response, else the first one that came back."""
    for r in responses:
        if r.domain == primary_domain:
            return r
    return responses[0] if responses else None
