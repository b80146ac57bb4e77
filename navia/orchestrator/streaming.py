"""Server-sent-event chat: tokens go out as they arrive, the turn is persisted after [DONE]."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Iterator

from langchain_core.language_models.chat_models import BaseChatModel

from navia.agent.prompts import COMPANION_PROMPT
from navia.core.llm import stream_complete
from navia.orchestrator.retriever import HybridRetriever
from navia.orchestrator.session import SessionRecorder, SessionSequencer

log = logging.getLogger("streaming")

DONE_FRAME = "data: [DONE]\n\n"
STREAM_APOLOGY = "I'm having trouble responding right now. Please try again in a moment."


def encode_frame(token: str) -> str:
    return f"data: {json.dumps({'content': token})}\n\n"


def parse_frame(line: str) -> str | None:
    """Token carried by one `data:` line; None for [DONE], blank lines and anything that isn't JSON."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    payload = line[len("data:"):].strip()
    if payload == "[DONE]":
        return None
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None
    content = data.get("content") if isinstance(data, dict) else None
    return content if isinstance(content, str) else None


def is_done_frame(line: str) -> bool:
    return line.strip() == DONE_FRAME.strip()


def decode_frames(raw: str) -> Iterator[str]:
    """Tokens of a complete SSE body, in order, up to the [DONE] sentinel."""
    for line in raw.splitlines():
        if is_done_frame(line):
            return
        token = parse_frame(line)
        if token is not None:
            yield token


class StreamingChat:
    """Companion-persona chat streamed as SSE frames.

    Each call runs a producer task that owns the completion and the persistence write; the response
    generator only drains its queue, so a client that goes away never cancels the write.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        retriever: HybridRetriever,
        recorder: SessionRecorder,
        sequencer: SessionSequencer,
        domain: str = "daily_task",
    ) -> None:
        self.llm = llm
        self.retriever = retriever
        self.recorder = recorder
        self.sequencer = sequencer
        self.domain = domain
        self._background: set[asyncio.Task] = set()

    async def stream(
        self,
        user_id: str,
        session_id: str,
        messages: list[dict[str, str]],
        context: dict[str, Any] | None = None,
    ) -> AsyncIterator[str]:
        slot = self.sequencer.take(user_id, session_id)
        queue: asyncio.Queue[str | None] = asyncio.Queue()
        task = asyncio.create_task(self._produce(queue, slot, user_id, session_id, messages, context or {}))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        while True:
            frame = await queue.get()
            if frame is None:
                break
            yield frame

    async def drain(self) -> None:
        """Wait for in-flight persistence writes (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _system_prompt(self, context: dict[str, Any]) -> str:
        prompt = COMPANION_PROMPT
        if context.get("energy_level") == "low":
            prompt += "\n\nTheir energy is LOW. Be extra gentle and validating, and keep it very short."
        if context.get("user_name"):
            prompt += f"\n\nTheir name: {context['user_name']}"
        return prompt

    async def _produce(self, queue, slot, user_id, session_id, messages, context) -> None:
        try:
            query = messages[-1]["content"]
            history = messages[:-1]
            try:
                retrieved = await self.retriever.retrieve(user_id, query, self.domain, session_id, history)
            except Exception as e:
                log.warning("Retrieval failed for streamed chat, using session turns only: %s", e)
                retrieved = list(history)
            prompt = [{"role": "system", "content": self._system_prompt(context)}, *retrieved, {"role": "user", "content": query}]

            try:
                text = await stream_complete(self.llm, prompt, lambda tok: queue.put_nowait(encode_frame(tok)))
            except Exception as e:
                log.warning("Stream failed for session %s: %s", session_id, e)
                # empty text marks the stored turn as an error
                text = ""
                queue.put_nowait(encode_frame(STREAM_APOLOGY))
            queue.put_nowait(DONE_FRAME)
            queue.put_nowait(None)

            await slot.wait_turn()
            first = await self.recorder.is_first_message(user_id, session_id)
            await self.recorder.record_turn(
                user_id=user_id,
                session_id=session_id,
                query=query,
                response_text=text,
                domain=self.domain,
                persona="companion",
                is_first_message=first,
                metadata={"streamed": True},
            )
        except Exception:
            log.exception("Streamed chat failed for session %s", session_id)
        finally:
            queue.put_nowait(None)
            slot.release()
