"""Turn a response's step breakdown into a durable Task (relational) plus a searchable task record."""
from __future__ import annotations

import logging
import re

from navia.core.contracts.agent import DomainResponse
from navia.core.contracts.records import SemanticRecord, Task
from navia.data_access.relational.base import TaskStore
from navia.data_access.vector.base import SemanticIndex

log = logging.getLogger("tasks")

MINUTES_PER_STEP = 15
MAX_ESTIMATE_MINUTES = 120
MAX_TITLE_LENGTH = 60

FILLER_RE = re.compile(r"^(help me|how do i|how to|can you|please|i need to|i want to)", re.IGNORECASE)
SENTENCE_END_RE = re.compile(r"[.!?]")

DOMAIN_CATEGORIES = {"finance": "finance", "career": "career", "daily_task": "daily_life"}


def extract_title(query: str) -> str:
    cleaned = FILLER_RE.sub("", query.strip()).strip()
    first = SENTENCE_END_RE.split(cleaned)[0].strip()
    if len(first) > MAX_TITLE_LENGTH:
        first = first[: MAX_TITLE_LENGTH - 3] + "..."
    return first[:1].upper() + first[1:]


def estimate_minutes(breakdown: list[str]) -> int:
    return min(len(breakdown) * MINUTES_PER_STEP, MAX_ESTIMATE_MINUTES)


def build_task(user_id: str, domain: str, response: DomainResponse, original_query: str) -> Task:
    return Task(
        user_id=user_id,
        domain=domain,
        title=extract_title(original_query) or "Untitled task",
        breakdown=list(response.breakdown or []),
        created_by_agent=f"{domain}_agent",
        original_query=original_query,
        summary=response.summary,
        complexity=response.metadata.complexity,
        time_estimate_minutes=estimate_minutes(response.breakdown or []),
        metadata={
            "confidence": response.metadata.confidence,
            "needsBreakdown": response.metadata.needs_breakdown,
            "tips": list(response.breakdown_tips),
            "category": DOMAIN_CATEGORIES.get(domain, domain),
        },
    )


def task_record(task: Task) -> SemanticRecord:
    category = DOMAIN_CATEGORIES.get(task.domain, task.domain)
    return SemanticRecord(
        id=task.task_id,
        user_namespace=task.user_id,
        domain=task.domain,
        content=f"Task: {task.title}, category: {category}. {task.summary}",
        timestamp=int(task.created_at.timestamp() * 1000),
        record_type="task",
        extracted_metadata={
            "task_id": task.task_id,
            "title": task.title,
            "status": task.status,
            "category": category,
            "time_estimate": task.time_estimate_minutes,
        },
    )


class TaskExtractor:
    def __init__(self, tasks: TaskStore, semantic: SemanticIndex) -> None:
        self.tasks = tasks
        self.semantic = semantic

    async def extract_if_needed(
        self,
        user_id: str,
        domain: str,
        response: DomainResponse,
        original_query: str,
    ) -> str | None:
        """Task id when the response carries a breakdown, else None.

        The relational write is authoritative: its StorageError propagates. The semantic write is best effort.
        """
        if not response.breakdown:
            return None
        task = build_task(user_id, domain, response, original_query)
        task_id = await self.tasks.insert_task(task)
        try:
            await self.semantic.upsert(task_record(task))
        except Exception as e:
            log.warning("Task %s saved, but semantic write failed: %s", task_id, e)
        log.info("Created task %s: %s (%s steps, ~%s min)", task_id, task.title, len(task.breakdown), task.time_estimate_minutes)
        return task_id
