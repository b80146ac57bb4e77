from __future__ import annotations

from typing import Any

from navia.agent.base import DomainAgent, KeywordResources, keyword_resources
from navia.core.contracts.agent import ResourceLink

PRODUCTIVITY_TOOLS: KeywordResources = [
    (
        ("focus", "concentrate", "distract"),
        ResourceLink(
            title="Focusmate",
            url="https://www.focusmate.com/",
            description="Virtual body doubling: work alongside someone in 25 or 50 minute sessions.",
            type="tool",
        ),
    ),
    (
        ("organize", "task", "plan", "email", "todo", "to-do"),
        ResourceLink(
            title="Goblin Tools",
            url="https://goblin.tools/",
            description="Free tools for neurodivergent people: task breakdown, tone check for emails, judgment-free lists.",
            type="tool",
        ),
    ),
    (
        ("time", "schedule", "routine"),
        ResourceLink(
            title="Tiimo",
            url="https://www.tiimoapp.com/",
            description="Visual daily planner designed for neurodivergent users, with icons and reminders.",
            type="tool",
        ),
    ),
    (
        ("start", "stuck", "procrastinat"),
        ResourceLink(
            title="Pomofocus",
            url="https://pomofocus.io/",
            description="Simple Pomodoro timer. Commit to just 5 minutes to get past task initiation.",
            type="tool",
        ),
    ),
]


class DailyTaskAgent(DomainAgent):
    domain = "daily_task"
    breakdown_context = "Daily task / executive function"
    fallback_summary = "Here's some support for your task."

    def curated_resources(self, query: str, user_context: dict[str, Any]) -> list[ResourceLink]:
        links = keyword_resources(query, PRODUCTIVITY_TOOLS)
        ef = user_context.get("ef_profile") or []
        if "task_initiation" in ef and not any(link.url == "https://pomofocus.io/" for link in links):
            links.append(PRODUCTIVITY_TOOLS[-1][1])
        return links

    def sub_topic(self, query: str) -> str:
        q = query.lower()
        if "focus" in q or "concentrate" in q:
            return "focus"
        if "organize" in q or "clutter" in q:
            return "organization"
        if "time" in q or "schedule" in q:
            return "time_management"
        if "routine" in q or "habit" in q:
            return "routines"
        if "start" in q or "stuck" in q or "procrastinat" in q:
            return "task_initiation"
        if "overwhelm" in q or "burnout" in q:
            return "overwhelm"
        return "general"
