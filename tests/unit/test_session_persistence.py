from __future__ import annotations

import asyncio

from navia.data_access.relational.memory import InMemoryMessageStore
from navia.data_access.vector.memory import InMemorySemanticIndex
from navia.orchestrator.reporter import APOLOGY_MESSAGE
from navia.orchestrator.session import SessionRecorder, SessionSequencer, generate_session_title

GOOD_ANSWER = "Start by opening a blank email and writing one friendly sentence."


class BrokenIndex:
    async def upsert(self, record):
        raise ConnectionError("vector service unreachable")

    async def query(self, *args, **kwargs):
        return []


def test_session_title() -> None:
    assert generate_session_title("How do I make a budget for my rent?") == "Make Budget Rent"
    assert generate_session_title("I need to email my professor about a recommendation letter") == (
        "Email Professor About Recommendation"
    )
    assert generate_session_title("hi") == "New Chat"
    long_title = generate_session_title("supercalifragilistic extraordinarily complicated administrative paperwork")
    assert len(long_title) == 40 and long_title.endswith("...")


def test_error_turn_written_relationally_but_not_semantically(embeddings) -> None:
    async def scenario():
        messages, semantic = InMemoryMessageStore(), InMemorySemanticIndex(embeddings)
        recorder = SessionRecorder(messages, semantic)
        bad = await recorder.record_turn(
            user_id="u1", session_id="s1", query="help", response_text=APOLOGY_MESSAGE, domain="daily_task", is_first_message=True
        )
        good = await recorder.record_turn(
            user_id="u1", session_id="s1", query="help with email", response_text=GOOD_ANSWER, domain="daily_task", is_first_message=True
        )
        stored = await messages.list_turns("u1", include_errors=True, newest_first=False)
        found = await semantic.query("u1", "help", top_k=10)
        return bad, good, stored, found

    bad, good, stored, found = asyncio.run(scenario())
    assert bad.is_error and bad.semantic_ref is None and bad.session_title is None
    assert not good.is_error and good.semantic_ref == f"chat_u1_{good.timestamp}"
    assert good.session_title == "Help Email"
    assert [t.message_id for t in stored] == [bad.message_id, good.message_id]
    assert [r.timestamp for r in found] == [good.timestamp]


def test_semantic_outage_still_writes_relational_turn() -> None:
    async def scenario():
        messages = InMemoryMessageStore()
        turn = await SessionRecorder(messages, BrokenIndex()).record_turn(
            user_id="u1", session_id="s1", query="q", response_text=GOOD_ANSWER, domain="finance"
        )
        return turn, await messages.list_turns("u1")

    turn, stored = asyncio.run(scenario())
    assert turn.semantic_ref is None
    assert [t.message_id for t in stored] == [turn.message_id]


def test_timestamps_strictly_increase_per_user(embeddings) -> None:
    recorder = SessionRecorder(InMemoryMessageStore(), InMemorySemanticIndex(embeddings))
    stamps = [recorder.next_timestamp("u1") for _ in range(50)]
    assert stamps == sorted(set(stamps))


def test_sequencer_persists_in_arrival_order() -> None:
    async def scenario():
        sequencer = SessionSequencer()
        written: list[str] = []

        async def request(name: str, work_s: float):
            slot = sequencer.take("u1", "s1")
            try:
                await asyncio.sleep(work_s)
                await slot.wait_turn()
                written.append(name)
            finally:
                slot.release()

        # the first request is the slowest, yet must be written first
        await asyncio.gather(request("first", 0.05), request("second", 0.0), request("third", 0.01))
        other = sequencer.take("u1", "other-session")
        await other.wait_turn()
        other.release()
        return written, sequencer._tails

    written, tails = asyncio.run(scenario())
    assert written == ["first", "second", "third"]
    assert tails == {}
