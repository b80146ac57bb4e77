"""Relational store interfaces: chat turns (append-only) and tasks."""
from __future__ import annotations

from typing import Any, Protocol

from navia.core.contracts.records import ChatTurn, Task

FEEDBACK_LOCK_AFTER = 2  # first selection + one change


class MessageStore(Protocol):
    async def insert_turn(self, turn: ChatTurn) -> ChatTurn: ...

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
    ) -> list[ChatTurn]: ...

    async def has_session_turns(self, user_id: str, session_id: str, *, include_errors: bool = False) -> bool: ...

    async def list_sessions(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]: ...

    async def update_feedback(self, user_id: str, message_id: str, feedback: bool | None) -> dict[str, Any]: ...


class TaskStore(Protocol):
    async def insert_task(self, task: Task) -> str: ...

    async def list_tasks(self, user_id: str, domain: str | None = None) -> list[Task]: ...

    async def get_task(self, user_id: str, task_id: str) -> Task | None: ...

    async def update_status(self, user_id: str, task_id: str, status: str) -> Task: ...

    async def stats(self, user_id: str) -> dict[str, Any]: ...


def next_feedback_state(metadata: dict[str, Any], current: bool | None, feedback: bool | None) -> dict[str, Any]:
    """Feedback toggle bookkeeping shared by stores. Returns the outcome plus the metadata to write."""
    count = int(metadata.get("feedbackToggleCount", 0))
    if count >= FEEDBACK_LOCK_AFTER:
        return {"success": False, "locked": True, "feedback": current, "toggleCount": count, "metadata": metadata}
    count += 1
    return {
        "success": True,
        "locked": count >= FEEDBACK_LOCK_AFTER,
        "feedback": feedback,
        "toggleCount": count,
        "metadata": {**metadata, "feedbackToggleCount": count},
    }


def summarize_sessions(turns: list[ChatTurn], limit: int) -> list[dict[str, Any]]:
    """Group successful turns (oldest first) into per-session summaries, most recent session first."""
    sessions: dict[str, dict[str, Any]] = {}
    for t in sorted(turns, key=lambda t: t.timestamp):
        if t.is_error:
            continue
        s = sessions.get(t.session_id)
        if s is None:
            sessions[t.session_id] = {
                "session_id": t.session_id,
                "session_title": t.session_title or "New Chat",
                "message_count": 1,
                "last_message_at": t.timestamp,
                "category": t.domain,
                "first_message": t.query_text,
            }
            continue
        s["message_count"] += 1
        s["last_message_at"] = t.timestamp
        if t.session_title and s["session_title"] == "New Chat":
            s["session_title"] = t.session_title
    ordered = sorted(sessions.values(), key=lambda s: s["last_message_at"], reverse=True)
    return ordered[:limit]


def task_stats(tasks: list[Task]) -> dict[str, Any]:
    by_domain: dict[str, int] = {}
    by_status = {"not_started": 0, "in_progress": 0, "completed": 0}
    for t in tasks:
        by_domain[t.domain] = by_domain.get(t.domain, 0) + 1
        by_status[t.status] = by_status.get(t.status, 0) + 1
    return {"total": len(tasks), "byDomain": by_domain, "byStatus": by_status}
