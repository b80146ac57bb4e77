"""Chat turns and tasks in app Postgres (asyncpg). Schema: migrations/versions/001_initial.sql."""
from __future__ import annotations

import json
from typing import Any

import asyncpg

from navia.core.contracts.records import TASK_TRANSITIONS, ChatTurn, Task
from navia.core.exceptions import InvalidTaskTransition, StorageError, TaskNotFound
from navia.data_access.relational.base import next_feedback_state, task_stats

TURN_COLUMNS = (
    "message_id, user_id, session_id, query_text, response_text, domain, persona, ts_ms, "
    "is_error, is_first_message, session_title, semantic_ref, user_feedback, metadata"
)
TASK_COLUMNS = (
    "task_id, user_id, domain, title, breakdown, status, created_by_agent, original_query, "
    "summary, complexity, time_estimate_minutes, metadata, created_at"
)


def normalize_url(url: str) -> str:
    # asyncpg uses postgresql:// not postgresql+asyncpg://
    return url.replace("postgresql+asyncpg://", "postgresql://")


def _json_field(raw: Any, default: Any) -> Any:
    if raw is None:
        return default
    if isinstance(raw, str):
        return json.loads(raw)
    return raw


def _row_to_turn(row: asyncpg.Record) -> ChatTurn:
    return ChatTurn(
        message_id=row["message_id"],
        user_id=row["user_id"],
        session_id=row["session_id"],
        query_text=row["query_text"],
        response_text=row["response_text"],
        domain=row["domain"],
        persona=row["persona"],
        timestamp=row["ts_ms"],
        is_error=row["is_error"],
        is_first_message=row["is_first_message"],
        session_title=row["session_title"],
        semantic_ref=row["semantic_ref"],
        user_feedback=row["user_feedback"],
        metadata=_json_field(row["metadata"], {}),
    )


def _row_to_task(row: asyncpg.Record) -> Task:
    return Task(
        task_id=row["task_id"],
        user_id=row["user_id"],
        domain=row["domain"],
        title=row["title"],
        breakdown=_json_field(row["breakdown"], []),
        status=row["status"],
        created_by_agent=row["created_by_agent"],
        original_query=row["original_query"],
        summary=row["summary"] or "",
        complexity=row["complexity"],
        time_estimate_minutes=row["time_estimate_minutes"],
        metadata=_json_field(row["metadata"], {}),
        created_at=row["created_at"],
    )


class PostgresDatabase:
    """Lazily created asyncpg pool shared by the Postgres stores."""

    def __init__(self, url: str, min_size: int = 1, max_size: int = 10) -> None:
        self._url = normalize_url(url)
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    async def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(self._url, min_size=self._min_size, max_size=self._max_size)
        return self._pool

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None


class PostgresMessageStore:
    def __init__(self, db: PostgresDatabase) -> None:
        self._db = db

    async def insert_turn(self, turn: ChatTurn) -> ChatTurn:
        pool = await self._db.pool()
        try:
            await pool.execute(
                f"""
                INSERT INTO app.chat_turns ({TURN_COLUMNS})
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14::jsonb)
                """,
                turn.message_id,
                turn.user_id,
                turn.session_id,
                turn.query_text,
                turn.response_text,
                turn.domain,
                turn.persona,
                turn.timestamp,
                turn.is_error,
                turn.is_first_message,
                turn.session_title,
                turn.semantic_ref,
                turn.user_feedback,
                json.dumps(turn.metadata, default=str),
            )
        except asyncpg.PostgresError as e:
            raise StorageError(f"insert_turn failed: {e}") from e
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
        clauses = ["user_id = $1"]
        args: list[Any] = [user_id]
        for column, op, value in (
            ("domain", "=", domain),
            ("session_id", "=", session_id),
            ("session_id", "<>", exclude_session_id),
        ):
            if value is not None:
                args.append(value)
                clauses.append(f"{column} {op} ${len(args)}")
        if not include_errors:
            clauses.append("is_error = false")
        order = "DESC" if newest_first else "ASC"
        sql = f"SELECT {TURN_COLUMNS} FROM app.chat_turns WHERE {' AND '.join(clauses)} ORDER BY ts_ms {order}"
        if limit is not None:
            args.append(limit)
            sql += f" LIMIT ${len(args)}"
        pool = await self._db.pool()
        rows = await pool.fetch(sql, *args)
        return [_row_to_turn(r) for r in rows]

    async def has_session_turns(self, user_id: str, session_id: str, *, include_errors: bool = False) -> bool:
        return bool(await self.list_turns(user_id, session_id=session_id, include_errors=include_errors, limit=1))

    async def list_sessions(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        pool = await self._db.pool()
        rows = await pool.fetch(
            """
            SELECT session_id,
                   COALESCE(MAX(session_title), 'New Chat') AS session_title,
                   COUNT(*) AS message_count,
                   MAX(ts_ms) AS last_message_at,
                   (ARRAY_AGG(domain ORDER BY ts_ms))[1] AS category,
                   (ARRAY_AGG(query_text ORDER BY ts_ms))[1] AS first_message
            FROM app.chat_turns
            WHERE user_id = $1 AND is_error = false
            GROUP BY session_id
            ORDER BY last_message_at DESC
            LIMIT $2
            """,
            user_id,
            limit,
        )
        return [dict(r) for r in rows]

    async def update_feedback(self, user_id: str, message_id: str, feedback: bool | None) -> dict[str, Any]:
        pool = await self._db.pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT user_feedback, metadata FROM app.chat_turns WHERE message_id = $1 AND user_id = $2 FOR UPDATE",
                    message_id,
                    user_id,
                )
                if not row:
                    raise StorageError(f"Message {message_id} not found")
                outcome = next_feedback_state(_json_field(row["metadata"], {}), row["user_feedback"], feedback)
                metadata = outcome.pop("metadata")
                if outcome["success"]:
                    await conn.execute(
                        "UPDATE app.chat_turns SET user_feedback = $1, metadata = $2::jsonb WHERE message_id = $3",
                        feedback,
                        json.dumps(metadata, default=str),
                        message_id,
                    )
        return outcome


class PostgresTaskStore:
    def __init__(self, db: PostgresDatabase) -> None:
        self._db = db

    async def insert_task(self, task: Task) -> str:
        pool = await self._db.pool()
        try:
            await pool.execute(
                f"""
                INSERT INTO app.tasks ({TASK_COLUMNS})
                VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8, $9, $10, $11, $12::jsonb, $13)
                """,
                task.task_id,
                task.user_id,
                task.domain,
                task.title,
                json.dumps(task.breakdown),
                task.status,
                task.created_by_agent,
                task.original_query,
                task.summary,
                task.complexity,
                task.time_estimate_minutes,
                json.dumps(task.metadata, default=str),
                task.created_at,
            )
        except asyncpg.PostgresError as e:
            raise StorageError(f"insert_task failed: {e}") from e
        return task.task_id

    async def list_tasks(self, user_id: str, domain: str | None = None) -> list[Task]:
        pool = await self._db.pool()
        if domain:
            rows = await pool.fetch(
                f"SELECT {TASK_COLUMNS} FROM app.tasks WHERE user_id = $1 AND domain = $2 ORDER BY created_at DESC",
                user_id,
                domain,
            )
        else:
            rows = await pool.fetch(
                f"SELECT {TASK_COLUMNS} FROM app.tasks WHERE user_id = $1 ORDER BY created_at DESC",
                user_id,
            )
        return [_row_to_task(r) for r in rows]

    async def get_task(self, user_id: str, task_id: str) -> Task | None:
        pool = await self._db.pool()
        row = await pool.fetchrow(
            f"SELECT {TASK_COLUMNS} FROM app.tasks WHERE user_id = $1 AND task_id = $2",
            user_id,
            task_id,
        )
        return _row_to_task(row) if row else None

    async def update_status(self, user_id: str, task_id: str, status: str) -> Task:
        pool = await self._db.pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT status FROM app.tasks WHERE user_id = $1 AND task_id = $2 FOR UPDATE",
                    user_id,
                    task_id,
                )
                if not row:
                    raise TaskNotFound(f"Task {task_id} not found")
                if status not in TASK_TRANSITIONS.get(row["status"], set()):
                    raise InvalidTaskTransition(f"Cannot move task from {row['status']} to {status}")
                updated = await conn.fetchrow(
                    f"UPDATE app.tasks SET status = $1, updated_at = now() WHERE task_id = $2 RETURNING {TASK_COLUMNS}",
                    status,
                    task_id,
                )
        return _row_to_task(updated)

    async def stats(self, user_id: str) -> dict[str, Any]:
        tasks = await self.list_tasks(user_id)
        return {**task_stats(tasks), "recent": [t.task_id for t in tasks[:5]]}
