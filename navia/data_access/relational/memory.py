"""In-memory relational stores: test backends and the process-wide task arena."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from navia.core.contracts.records import TASK_TRANSITIONS, ChatTurn, Task
from navia.core.exceptions import InvalidTaskTransition, StorageError, TaskNotFound
from navia.data_access.relational.base import next_feedback_state, summarize_sessions, task_stats

log = logging.getLogger("tasks")


class KeyedLocks:
    """One asyncio.Lock per key; different keys never contend."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


class InMemoryMessageStore:
    def __init__(self) -> None:
        self._turns: list[ChatTurn] = []

    async def insert_turn(self, turn: ChatTurn) -> ChatTurn:
        if any(t.message_id == turn.message_id for t in self._turns):
            raise StorageError(f"Duplicate message_id {turn.message_id}")
        self._turns.append(turn)
        return turn

    async def list_turns(
        self,
        user_id: str,
        *,
        domain: str | None = None,
        session_id: str | None = None,
        exclude_session_id: str | None = None,
        include_errors: bool = False,
        newest_first: bool = True,
        limit: int | None = None,
    ) -> list[ChatTurn]:
        rows = [
            t
            for t in self._turns
            if t.user_id == user_id
            and (domain is None or t.domain == domain)
            and (session_id is None or t.session_id == session_id)
            and (exclude_session_id is None or t.session_id != exclude_session_id)
            and (include_errors or not t.is_error)
        ]
        # stable sort keeps insertion order for equal timestamps
        rows.sort(key=lambda t: t.timestamp, reverse=newest_first)
        return rows[:limit] if limit is not None else rows

    async def has_session_turns(self, user_id: str, session_id: str, *, include_errors: bool = False) -> bool:
        return bool(await self.list_turns(user_id, session_id=session_id, include_errors=include_errors, limit=1))

    async def list_sessions(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        return summarize_sessions([t for t in self._turns if t.user_id == user_id], limit)

    async def update_feedback(self, user_id: str, message_id: str, feedback: bool | None) -> dict[str, Any]:
        for i, t in enumerate(self._turns):
            if t.message_id == message_id and t.user_id == user_id:
                outcome = next_feedback_state(t.metadata, t.user_feedback, feedback)
                metadata = outcome.pop("metadata")
                if outcome["success"]:
                    self._turns[i] = t.model_copy(update={"user_feedback": feedback, "metadata": metadata})
                return outcome
        raise StorageError(f"Message {message_id} not found")


class InMemoryTaskStore:
    """Arena of tasks keyed by user_id (append order) with a task_id -> (user_id, index) lookup.

    Appends and status changes for one user are serialized by that user's lock.
    """

    def __init__(self) -> None:
        self._arena: dict[str, list[Task]] = {}
        self._index: dict[str, tuple[str, int]] = {}
        self._locks = KeyedLocks()

    async def insert_task(self, task: Task) -> str:
        async with self._locks.get(task.user_id):
            if task.task_id in self._index:
                raise StorageError(f"Duplicate task_id {task.task_id}")
            tasks = self._arena.setdefault(task.user_id, [])
            tasks.append(task)
            self._index[task.task_id] = (task.user_id, len(tasks) - 1)
        log.info("Task stored: %s (%s) for user %s", task.task_id, task.domain, task.user_id)
        return task.task_id

    async def list_tasks(self, user_id: str, domain: str | None = None) -> list[Task]:
        tasks = self._arena.get(user_id, [])
        return [t for t in reversed(tasks) if domain is None or t.domain == domain]

    async def get_task(self, user_id: str, task_id: str) -> Task | None:
        loc = self._index.get(task_id)
        if loc is None or loc[0] != user_id:
            return None
        return self._arena[user_id][loc[1]]

    async def update_status(self, user_id: str, task_id: str, status: str) -> Task:
        async with self._locks.get(user_id):
            current = await self.get_task(user_id, task_id)
            if current is None:
                raise TaskNotFound(f"Task {task_id} not found")
            if status not in TASK_TRANSITIONS.get(current.status, set()):
                raise InvalidTaskTransition(f"Cannot move task from {current.status} to {status}")
            updated = current.model_copy(update={"status": status})
            self._arena[user_id][self._index[task_id][1]] = updated
        log.info("Task %s status updated to: %s", task_id, status)
        return updated

    async def stats(self, user_id: str) -> dict[str, Any]:
        tasks = await self.list_tasks(user_id)
        return {**task_stats(tasks), "recent": [t.task_id for t in tasks[:5]]}
