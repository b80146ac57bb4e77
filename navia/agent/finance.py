from __future__ import annotations

from typing import Any

from navia.agent.base import DomainAgent, KeywordResources, keyword_resources
from navia.core.contracts.agent import ResourceLink

FINANCE_RESOURCES: KeywordResources = [
    (
        ("budget", "expense", "track", "spending"),
        ResourceLink(
            title="YNAB (You Need A Budget)",
            url="https://www.ynab.com/",
            description="Zero-based budgeting app that gives every dollar a job. Visual and rule-light.",
            type="tool",
        ),
    ),
    (
        ("debt", "loan", "credit"),
        ResourceLink(
            title="CFPB: Debt and loans",
            url="https://www.consumerfinance.gov/consumer-tools/debt-collection/",
            description="Plain-language guidance on debt collection, credit reports and your rights.",
            type="guide",
        ),
    ),
    (
        ("student", "aid", "fafsa", "grant"),
        ResourceLink(
            title="Federal Student Aid",
            url="https://studentaid.gov/",
            description="Official source for FAFSA, grants, loan repayment plans and forgiveness.",
            type="guide",
        ),
    ),
    (
        ("benefit", "disability", "ssi", "snap"),
        ResourceLink(
            title="Benefits.gov eligibility finder",
            url="https://www.benefits.gov/benefit-finder",
            description="Questionnaire that lists government benefits you may qualify for.",
            type="tool",
        ),
    ),
]


class FinanceAgent(DomainAgent):
    domain = "finance"
    breakdown_context = "Finance task"
    fallback_summary = "Here's some support for your money question."

    def curated_resources(self, query: str, user_context: dict[str, Any]) -> list[ResourceLink]:
        return keyword_resources(query, FINANCE_RESOURCES)

    def sub_topic(self, query: str) -> str:
        q = query.lower()
        if "budget" in q or "expense" in q:
            return "budgeting"
        if "debt" in q or "loan" in q:
            return "debt"
        if "save" in q or "saving" in q:
            return "savings"
        if "benefit" in q or "aid" in q:
            return "benefits"
        return "general"
