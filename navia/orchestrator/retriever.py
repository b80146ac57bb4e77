"""Hybrid retrieval: session turns, then semantic matches, then deduplicated chronological history."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from navia.core.contracts.records import ChatTurn, SemanticRecord
from navia.data_access.relational.base import MessageStore
from navia.data_access.vector.base import SemanticIndex

log = logging.getLogger("retriever")


def _as_message(turn: Any) -> dict[str, str]:
    if isinstance(turn, dict):
        return {"role": turn["role"], "content": turn["content"]}
    return {"role": turn.role, "content": turn.content}


@dataclass
class RetrievedContext:
    """The three context parts, kept apart so callers (and tests) can see where each message came from."""

    session: list[dict[str, str]] = field(default_factory=list)
    semantic: list[SemanticRecord] = field(default_factory=list)
    chronological: list[ChatTurn] = field(default_factory=list)
    semantic_failed: bool = False

    def messages(self) -> list[dict[str, str]]:
        out = list(self.session)
        for record in self.semantic:
            out.extend(record.as_messages())
        for turn in self.chronological:
            out.extend(turn.as_messages())
        return out


class HybridRetriever:
    def __init__(self, messages: MessageStore, semantic: SemanticIndex, semantic_top_k: int = 3) -> None:
        self.messages = messages
        self.semantic = semantic
        self.semantic_top_k = semantic_top_k

    async def retrieve(
        self,
        user_id: str,
        query: str,
        primary_domain: str,
        session_id: str | None,
        session_turns: list[Any],
    ) -> list[dict[str, str]]:
        detailed = await self.retrieve_detailed(user_id, query, primary_domain, session_id, session_turns)
        return detailed.messages()

    async def retrieve_detailed(
        self,
        user_id: str,
        query: str,
        primary_domain: str,
        session_id: str | None,
        session_turns: list[Any],
    ) -> RetrievedContext:
        context = RetrievedContext(session=[_as_message(t) for t in session_turns])

        try:
            context.semantic = await self.semantic.query(
                user_id, query, domain=primary_domain, top_k=self.semantic_top_k
            )
        except Exception as e:
            log.warning("Semantic index unavailable, continuing without it: %s", e)
            context.semantic_failed = True

        # turns of the current session are already present verbatim when the caller sent them
        exclude = session_id if session_turns else None
        if exclude:
            asked = {m["content"] for m in context.session if m["role"] == "user"}
            context.semantic = [
                r for r in context.semantic
                if r.session_id != exclude and r.extracted_metadata.get("query_text") not in asked
            ]
        history = await self.messages.list_turns(
            user_id, domain=primary_domain, exclude_session_id=exclude, newest_first=True
        )
        seen = {r.timestamp for r in context.semantic}
        context.chronological = [t for t in reversed(history) if t.timestamp not in seen]

        log.info(
            "Context for %s/%s: %s session, %s semantic, %s chronological",
            user_id,
            primary_domain,
            len(context.session),
            len(context.semantic),
            len(context.chronological),
        )
        return context
