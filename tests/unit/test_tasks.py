from __future__ import annotations

import asyncio

import pytest

from navia.core.contracts.agent import DomainResponse
from navia.core.exceptions import StorageError
from navia.data_access.relational.memory import InMemoryTaskStore
from navia.data_access.vector.memory import InMemorySemanticIndex
from navia.orchestrator.tasks import TaskExtractor, estimate_minutes, extract_title


class BrokenIndex:
    async def upsert(self, record):
        raise ConnectionError("vector service unreachable")

    async def query(self, *args, **kwargs):
        raise ConnectionError("vector service unreachable")


class BrokenTaskStore(InMemoryTaskStore):
    async def insert_task(self, task):
        raise StorageError("database is down")


def _response(breakdown):
    return DomainResponse(domain="daily_task", summary="Here's a gentle plan for the email.", breakdown=breakdown)


def test_title_strips_filler_and_capitalizes() -> None:
    assert extract_title("I need to email my professor about a recommendation letter") == (
        "Email my professor about a recommendation letter"
    )
    assert extract_title("how do i clean my room? It is a mess.") == "Clean my room"
    assert extract_title("Please file my taxes") == "File my taxes"


def test_long_title_is_truncated() -> None:
    title = extract_title("help me " + "organize " * 20)
    assert len(title) == 60
    assert title.endswith("...")
    assert title.startswith("Organize")


def test_time_estimate_is_capped() -> None:
    assert estimate_minutes(["a", "b", "c"]) == 45
    assert estimate_minutes(["step"] * 8) == 120
    assert estimate_minutes(["step"] * 20) == 120
    assert estimate_minutes([]) == 0


def test_task_created_iff_breakdown_non_empty(embeddings) -> None:
    async def scenario():
        store = InMemoryTaskStore()
        extractor = TaskExtractor(store, InMemorySemanticIndex(embeddings))
        none_id = await extractor.extract_if_needed("u1", "daily_task", _response(None), "hi")
        empty_id = await extractor.extract_if_needed("u1", "daily_task", _response([]), "hi")
        task_id = await extractor.extract_if_needed(
            "u1", "daily_task", _response(["Open email", "Write greeting", "Send"]), "Help me email my professor"
        )
        return store, none_id, empty_id, task_id

    store, none_id, empty_id, task_id = asyncio.run(scenario())
    assert none_id is None and empty_id is None
    assert task_id is not None
    task = asyncio.run(store.get_task("u1", task_id))
    assert task.status == "not_started"
    assert task.title == "Email my professor"
    assert task.breakdown == ["Open email", "Write greeting", "Send"]
    assert task.time_estimate_minutes == 45
    assert task.created_by_agent == "daily_task_agent"
    assert task.metadata["category"] == "daily_life"


def test_task_record_is_searchable_but_not_chat_context(embeddings) -> None:
    async def scenario():
        semantic = InMemorySemanticIndex(embeddings)
        extractor = TaskExtractor(InMemoryTaskStore(), semantic)
        task_id = await extractor.extract_if_needed("u1", "daily_task", _response(["One", "Two"]), "Email professor")
        as_task = await semantic.query("u1", "Email professor", record_type="task")
        as_chat = await semantic.query("u1", "Email professor")
        return task_id, as_task, as_chat

    task_id, as_task, as_chat = asyncio.run(scenario())
    assert [r.id for r in as_task] == [task_id]
    assert as_chat == []


def test_semantic_failure_does_not_fail_extraction() -> None:
    async def scenario():
        store = InMemoryTaskStore()
        task_id = await TaskExtractor(store, BrokenIndex()).extract_if_needed(
            "u1", "finance", _response(["List bills"]), "make a budget"
        )
        return store, task_id

    store, task_id = asyncio.run(scenario())
    assert task_id is not None
    assert asyncio.run(store.get_task("u1", task_id)) is not None


def test_relational_failure_propagates(embeddings) -> None:
    extractor = TaskExtractor(BrokenTaskStore(), InMemorySemanticIndex(embeddings))
    with pytest.raises(StorageError):
        asyncio.run(extractor.extract_if_needed("u1", "finance", _response(["List bills"]), "make a budget"))
