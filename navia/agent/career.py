from __future__ import annotations

from typing import Any

from navia.agent.base import DomainAgent, KeywordResources, keyword_resources
from navia.core.contracts.agent import ResourceLink

CAREER_RESOURCES: KeywordResources = [
    (
        ("accommodation", "disability", "ada", "disclose"),
        ResourceLink(
            title="Job Accommodation Network (JAN)",
            url="https://askjan.org/",
            description="Free guidance on workplace accommodations and disclosure, searchable by condition.",
            type="guide",
        ),
    ),
    (
        ("resume", "cv", "cover letter"),
        ResourceLink(
            title="Resume templates",
            url="https://www.canva.com/resumes/templates/",
            description="Clean resume layouts; pick one and fill it in one section at a time.",
            type="template",
        ),
    ),
    (
        ("interview",),
        ResourceLink(
            title="Interview prep with the STAR method",
            url="https://www.themuse.com/advice/star-interview-method",
            description="Structure answers as Situation, Task, Action, Result to reduce on-the-spot pressure.",
            type="article",
        ),
    ),
    (
        ("linkedin", "network", "connect", "recommendation", "reference"),
        ResourceLink(
            title="LinkedIn profile checklist",
            url="https://www.linkedin.com/help/linkedin/answer/a554351",
            description="Step-by-step checklist for a complete profile and asking for recommendations.",
            type="guide",
        ),
    ),
]


class CareerAgent(DomainAgent):
    domain = "career"
    breakdown_context = "Career task"
    fallback_summary = "Here's some support for your career question."

    def curated_resources(self, query: str, user_context: dict[str, Any]) -> list[ResourceLink]:
        return keyword_resources(query, CAREER_RESOURCES)

    def sub_topic(self, query: str) -> str:
        q = query.lower()
        if "resume" in q or "cv" in q:
            return "resume"
        if "interview" in q:
            return "interview"
        if "accommodation" in q:
            return "accommodations"
        if "job" in q or "apply" in q:
            return "job_search"
        if "network" in q or "linkedin" in q:
            return "networking"
        return "general"
