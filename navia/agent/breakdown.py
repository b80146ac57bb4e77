"""Breakdown support shared by the domain agents: keyword checks and the secondary breakdown call."""
from __future__ import annotations

import logging
import re
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from pydantic import BaseModel, Field

from navia.agent.prompts import BREAKDOWN_PROMPT
from navia.core.llm import complete, message_text, parse_json_output

log = logging.getLogger("breakdown")

EXPLICIT_PLAN_KEYWORDS = (
    "create a plan",
    "make a plan",
    "build a plan",
    "give me a plan",
    "give me plan",
    "i need a plan",
    "i need plan",
    "show me a plan",
    "provide a plan",
    "step by step",
    "step-by-step",
    "steps to",
    "steps for",
    "break down",
    "break it down",
    "breakdown",
    "walk me through",
    "guide me through",
)

# broader than EXPLICIT_PLAN_KEYWORDS: signals that a breakdown would help, not that one was asked for
BREAKDOWN_HINT_KEYWORDS = EXPLICIT_PLAN_KEYWORDS + (
    "where do i start",
    "where to start",
    "how do i begin",
    "how to begin",
    "overwhelmed",
    "too much",
    "stuck",
    "can't start",
    "cannot start",
    "help me plan",
)

GREETING_RE = re.compile(
    r"^(hi|hey|hello|yo|thanks|thank you|thx|good (morning|afternoon|evening|night)|ok(ay)?|cool|bye)\b[\s!.,?]*\w{0,12}[\s!.?]*$",
    re.IGNORECASE,
)

FALLBACK_BREAKDOWN = [
    "Gather any materials or information you need",
    "Do the main part of the task in small chunks",
    "Review what you've done and celebrate finishing",
]
FALLBACK_TIPS = ["Take breaks between steps", "You don't have to do it all at once"]


class BreakdownResult(BaseModel):
    breakdown: list[str]
    complexity: int = 5
    estimated_time: str | None = None
    tips: list[str] = Field(default_factory=list)
    fallback: bool = False


def as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        # onboarding stores challenges as {"task_initiation": true, ...}
        return [k for k, v in value.items() if v]
    return [str(v) for v in value]


def explicitly_requests_breakdown(query: str) -> bool:
    lowered = query.lower()
    return any(k in lowered for k in EXPLICIT_PLAN_KEYWORDS)


def contains_breakdown_keywords(query: str) -> bool:
    lowered = query.lower()
    return any(k in lowered for k in BREAKDOWN_HINT_KEYWORDS)


def is_simple_greeting(query: str) -> bool:
    return bool(GREETING_RE.match(query.strip()))


def simplify_for_low_energy(steps: list[str], max_steps: int = 3) -> list[str]:
    # drop parenthesised detail such as time estimates
    return [s.split("(")[0].strip() or s for s in steps[:max_steps]]


def ef_specific_tips(ef_profile: list[str] | None) -> list[str]:
    profile = set(ef_profile or [])
    tips: list[str] = []
    if profile & {"task_initiation", "procrastination"}:
        tips.append("Set a timer for just 5 minutes to start; you can stop after if needed")
    if profile & {"time_blindness", "time_management"}:
        tips.append("Use a visual timer you can see while working")
    if "working_memory" in profile:
        tips.append("Keep this breakdown visible and tick steps off as you go")
    if profile & {"overwhelm", "anxiety"}:
        tips.append("You don't have to do every step today")
    return tips or ["Progress over perfection", "Celebrate completing each step"]


async def generate_breakdown(
    llm: BaseChatModel,
    task: str,
    context: str | None = None,
    ef_profile: list[str] | None = None,
) -> BreakdownResult:
    """Secondary completion that turns a task into micro-steps. Falls back to a generic 3-step plan."""
    details = [f'Task: "{task}"']
    if context:
        details.append(f"Context: {context}")
    if ef_profile:
        details.append(f"User's executive function profile: {', '.join(ef_profile)} (adjust the steps to these challenges)")
    prompt = ChatPromptTemplate.from_messages([
        ("system", "{system}"),
        ("human", "Break this task down into micro-steps.\n{details}"),
    ])
    try:
        out = await (prompt | llm).ainvoke({"system": BREAKDOWN_PROMPT, "details": "\n".join(details)})
        data = parse_json_output(message_text(out))
        steps = [str(s).strip() for s in data.get("breakdown") or [] if str(s).strip()]
        if not steps:
            raise ValueError("empty breakdown")
        return BreakdownResult(
            breakdown=steps,
            complexity=int(data.get("complexity") or 5),
            estimated_time=data.get("estimatedTime"),
            tips=[str(t) for t in data.get("tips") or []],
        )
    except Exception as e:
        log.warning("Breakdown generation failed, using fallback: %s", e)
        return BreakdownResult(breakdown=list(FALLBACK_BREAKDOWN), tips=list(FALLBACK_TIPS), fallback=True)


class ComplexityAnalysis(BaseModel):
    complexity: int = 5
    needs_breakdown: bool = True
    reasoning: str = ""


async def analyze_task_complexity(llm: BaseChatModel, task: str, context: str | None = None) -> ComplexityAnalysis:
    """Cheap pre-check before a breakdown: how complex is the task, and would steps help. Errs toward yes."""
    if explicitly_requests_breakdown(task):
        return ComplexityAnalysis(complexity=7, needs_breakdown=True, reasoning="User explicitly requested a plan")
    details = f'Task: "{task}"' + (f"\nContext: {context}" if context else "")
    messages = [
        {"role": "system", "content": BREAKDOWN_PROMPT},
        {
            "role": "user",
            "content": f"Analyze this task and determine its complexity.\n{details}\n\n"
            'Respond with ONLY this JSON (no breakdown yet): '
            '{"complexity": 0-10, "needsBreakdown": true|false, "reasoning": "why"}',
        },
    ]
    try:
        data = parse_json_output(await complete(llm, messages))
        complexity = max(0, min(10, int(data.get("complexity") or 5)))
    except Exception as e:
        log.warning("Complexity analysis failed, assuming a breakdown helps: %s", e)
        return ComplexityAnalysis(reasoning="Task requires multiple steps")
    return ComplexityAnalysis(
        complexity=complexity,
        needs_breakdown=bool(data.get("needsBreakdown")) or complexity >= 5,
        reasoning=str(data.get("reasoning") or "Task requires multiple steps"),
    )


class PlannedBreakdown(BaseModel):
    analysis: ComplexityAnalysis
    result: BreakdownResult | None = None  # None when the task needs no breakdown


class BreakdownPlanner:
    """Standalone breakdown: analyse the task first, then plan only when a plan would help."""

    def __init__(self, llm: BaseChatModel, fast_llm: BaseChatModel | None = None) -> None:
        self.llm = llm
        self.fast_llm = fast_llm or llm

    async def plan(
        self,
        task: str,
        context: str | None = None,
        auto_breakdown: bool = False,
        ef_profile: Any = None,
    ) -> PlannedBreakdown:
        ef_profile = as_list(ef_profile)
        analysis = await analyze_task_complexity(self.fast_llm, task, context)
        if not (auto_breakdown or contains_breakdown_keywords(task) or analysis.needs_breakdown):
            log.info("No breakdown needed (complexity %s)", analysis.complexity)
            return PlannedBreakdown(analysis=analysis)
        result = await generate_breakdown(self.llm, task, context, ef_profile)
        if ef_profile:
            result.tips = ef_specific_tips(ef_profile)
        return PlannedBreakdown(analysis=analysis, result=result)
