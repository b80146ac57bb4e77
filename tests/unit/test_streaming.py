from __future__ import annotations

import asyncio

from navia.data_access.relational.memory import InMemoryMessageStore
from navia.data_access.vector.memory import InMemorySemanticIndex
from navia.orchestrator.retriever import HybridRetriever
from navia.orchestrator.session import SessionRecorder, SessionSequencer
from navia.orchestrator.streaming import (
    DONE_FRAME,
    STREAM_APOLOGY,
    StreamingChat,
    decode_frames,
    encode_frame,
    parse_frame,
)

COMPANION_REPLY = "That sounds like a lot. Want to start by opening the document together?"


def _chat(llm, embeddings):
    messages, semantic = InMemoryMessageStore(), InMemorySemanticIndex(embeddings)
    recorder = SessionRecorder(messages, semantic)
    chat = StreamingChat(llm, HybridRetriever(messages, semantic), recorder, SessionSequencer())
    return chat, messages, semantic


def test_frame_format() -> None:
    assert encode_frame("hi") == 'data: {"content": "hi"}\n\n'
    assert DONE_FRAME == "data: [DONE]\n\n"


def test_decode_treats_non_json_frames_as_no_ops() -> None:
    raw = (
        encode_frame("Hello ")
        + "data: {not json}\n\n"
        + ": keep-alive comment\n\n"
        + 'data: {"other": 1}\n\n'
        + encode_frame("world")
        + DONE_FRAME
        + encode_frame("after done")
    )
    assert "".join(decode_frames(raw)) == "Hello world"
    assert parse_frame("data: [DONE]") is None
    assert parse_frame("event: ping") is None


def test_stream_emits_tokens_then_done_and_persists(make_llm, embeddings) -> None:
    async def scenario():
        chat, messages, semantic = _chat(make_llm(companion=COMPANION_REPLY), embeddings)
        frames = [f async for f in chat.stream("u1", "s1", [{"role": "user", "content": "I can't start my essay"}])]
        await chat.drain()
        return frames, await messages.list_turns("u1"), await semantic.query("u1", "essay")

    frames, turns, records = asyncio.run(scenario())
    assert frames[-1] == DONE_FRAME
    assert "".join(decode_frames("".join(frames))) == COMPANION_REPLY
    assert len(turns) == 1
    assert turns[0].response_text == COMPANION_REPLY
    assert turns[0].persona == "companion"
    assert turns[0].is_first_message
    assert len(records) == 1


def test_client_disconnect_does_not_abort_persistence(make_llm, embeddings) -> None:
    async def scenario():
        chat, messages, _ = _chat(make_llm(companion=COMPANION_REPLY), embeddings)
        stream = chat.stream("u1", "s1", [{"role": "user", "content": "hello?"}])
        first = await stream.__anext__()
        await stream.aclose()
        await chat.drain()
        return first, await messages.list_turns("u1")

    first, turns = asyncio.run(scenario())
    assert parse_frame(first.strip()) is not None
    assert [t.response_text for t in turns] == [COMPANION_REPLY]


def test_stream_failure_sends_apology_and_records_error_turn(make_llm, embeddings) -> None:
    async def scenario():
        chat, messages, semantic = _chat(make_llm(companion=RuntimeError("upstream 503")), embeddings)
        frames = [f async for f in chat.stream("u1", "s1", [{"role": "user", "content": "are you there"}])]
        await chat.drain()
        return frames, await messages.list_turns("u1", include_errors=True), await semantic.query("u1", "are you there")

    frames, turns, records = asyncio.run(scenario())
    body = "".join(frames)
    assert "".join(decode_frames(body)) == STREAM_APOLOGY
    assert "503" not in body
    assert len(turns) == 1 and turns[0].is_error
    assert records == []
