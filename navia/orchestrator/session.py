"""Persist completed exchanges: relational ChatTurn always, SemanticRecord only for non-error turns."""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from navia.core.contracts.records import ChatTurn, SemanticRecord, now_ms
from navia.data_access.relational.base import MessageStore
from navia.data_access.vector.base import SemanticIndex
from navia.orchestrator.reporter import is_error_response

log = logging.getLogger("session")

DEFAULT_SESSION_TITLE = "New Chat"
MAX_TITLE_LENGTH = 40
QUESTION_STARTERS = (
    "how do i", "how can i", "how to", "can you", "could you", "help me", "i need", "i want",
    "tell me", "what is", "what are", "explain", "show me",
)
TITLE_STOP_WORDS = {"the", "and", "for", "with"}


def generate_session_title(first_message: str) -> str:
    """First four meaningful words of the opening message, title-cased."""
    processed = first_message.lower().strip()
    for starter in QUESTION_STARTERS:
        processed = processed.replace(starter, "", 1)
    words = [
        w for w in re.sub(r"[^\w\s'-]", " ", processed).split()
        if len(w) > 2 and w not in TITLE_STOP_WORDS
    ][:4]
    title = " ".join(w[0].upper() + w[1:] for w in words)
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    return title or DEFAULT_SESSION_TITLE


class SessionSequencer:
    """Per-session FIFO: a slot is taken when a request arrives and held until its turn is written."""

    def __init__(self) -> None:
        self._tails: dict[str, asyncio.Future] = {}

    def take(self, user_id: str, session_id: str) -> "SequencerSlot":
        key = f"{user_id}:{session_id}"
        mine = asyncio.get_running_loop().create_future()
        previous = self._tails.get(key)
        self._tails[key] = mine
        return SequencerSlot(self, key, previous, mine)

    def _release(self, key: str, mine: asyncio.Future) -> None:
        if not mine.done():
            mine.set_result(None)
        if self._tails.get(key) is mine:
            del self._tails[key]


class SequencerSlot:
    def __init__(self, sequencer: SessionSequencer, key: str, previous: asyncio.Future | None, mine: asyncio.Future) -> None:
        self._sequencer = sequencer
        self._key = key
        self._previous = previous
        self._mine = mine

    async def wait_turn(self) -> None:
        if self._previous is not None and not self._previous.done():
            # asyncio.wait neither raises nor cancels the earlier request's future
            await asyncio.wait([self._previous])

    def release(self) -> None:
        self._sequencer._release(self._key, self._mine)


class SessionRecorder:
    def __init__(self, messages: MessageStore, semantic: SemanticIndex) -> None:
        self.messages = messages
        self.semantic = semantic
        self._last_ts: dict[str, int] = {}

    def next_timestamp(self, user_id: str) -> int:
        # strictly increasing per user: the timestamp is both the semantic record id suffix and the dedup key
        ts = max(now_ms(), self._last_ts.get(user_id, 0) + 1)
        self._last_ts[user_id] = ts
        return ts

    async def is_first_message(self, user_id: str, session_id: str) -> bool:
        """True until the session has a successful turn, so the title goes to the first good answer."""
        try:
            return not await self.messages.has_session_turns(user_id, session_id)
        except Exception as e:
            log.warning("Could not check session %s history: %s", session_id, e)
            return False

    async def record_turn(
        self,
        *,
        user_id: str,
        session_id: str,
        query: str,
        response_text: str,
        domain: str,
        persona: str = "orchestrator",
        is_first_message: bool = False,
        message_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ChatTurn:
        """Never raises: storage failures are logged and the (possibly unsaved) turn is returned."""
        is_error = is_error_response(response_text)
        fields: dict[str, Any] = {}
        if message_id:
            fields["message_id"] = message_id
        turn = ChatTurn(
            user_id=user_id,
            session_id=session_id,
            query_text=query,
            response_text=response_text,
            domain=domain,
            persona=persona,
            timestamp=self.next_timestamp(user_id),
            is_error=is_error,
            is_first_message=is_first_message and not is_error,
            session_title=generate_session_title(query) if is_first_message and not is_error else None,
            metadata=metadata or {},
            **fields,
        )

        if is_error:
            log.info("Turn %s looks like an error, skipping semantic write", turn.message_id)
        else:
            try:
                ref = await self.semantic.upsert(SemanticRecord.from_turn(turn))
                turn = turn.model_copy(update={"semantic_ref": ref})
            except Exception as e:
                log.warning("Semantic write failed for turn %s: %s", turn.message_id, e)

        try:
            await self.messages.insert_turn(turn)
        except Exception:
            log.exception("Relational write failed for turn %s", turn.message_id)
            return turn
        log.info(
            "Stored turn %s (session %s, %s, error=%s)", turn.message_id, session_id, domain, turn.is_error
        )
        return turn
