from __future__ import annotations

import asyncio

import pytest

from navia.agent.breakdown import (
    FALLBACK_BREAKDOWN,
    BreakdownPlanner,
    analyze_task_complexity,
    explicitly_requests_breakdown,
    is_simple_greeting,
)
from navia.agent.guardrails import apply_guardrails, parse_limits
from navia.agent.registry import build_agents
from navia.core.config.models import AgentConfig, AssistantConfig
from navia.core.contracts.agent import DomainResponse
from navia.core.exceptions import AgentUnavailable


def _answer(**overrides):
    answer = {
        "summary": "Here is a calm answer that walks through what to do next.",
        "needsBreakdown": False,
        "complexity": 3,
        "confidence": 0.9,
    }
    answer.update(overrides)
    return answer


def _agent(llm, domain, guardrails=()):
    config = AssistantConfig(
        assistant_id="t",
        agents=[AgentConfig(domain=domain, name=f"{domain}_agent", guardrails=list(guardrails))],
        default_domain=domain,
    )
    return build_agents(config, llm, llm)[domain]


def _respond(agent, query, context=(), user_context=None):
    return asyncio.run(agent.respond(query, list(context), user_context or {}))


def test_registry_builds_only_enabled_agents(make_llm) -> None:
    config = AssistantConfig(
        assistant_id="t",
        agents=[
            AgentConfig(domain="finance", name="f"),
            AgentConfig(domain="career", name="c", enabled=False),
            AgentConfig(domain="daily_task", name="d"),
        ],
    )
    agents = build_agents(config, make_llm())
    assert sorted(agents) == ["daily_task", "finance"]
    assert agents["finance"].domain == "finance"


def test_structured_answer_is_parsed(make_llm) -> None:
    llm = make_llm(
        agents={
            "finance": _answer(
                needsBreakdown=True,
                complexity=6,
                breakdown=["List your income", {"title": "List fixed bills"}, ""],
                breakdownTips=["Use round numbers"],
                resources=[{"title": "Budget worksheet", "url": "https://example.org/worksheet"}, {"bad": 1}],
                sources=[{"title": "CFPB", "url": "https://www.consumerfinance.gov/"}],
            )
        }
    )
    response = _respond(_agent(llm, "finance"), "Can you help me with a budget?")

    assert isinstance(response, DomainResponse)
    assert response.breakdown == ["List your income", "List fixed bills"]
    assert response.breakdown_tips == ["Use round numbers"]
    assert response.metadata.needs_breakdown
    assert response.metadata.complexity == 6
    # curated resources come first, malformed ones are dropped
    assert [r.title for r in response.resources] == ["YNAB (You Need A Budget)", "Budget worksheet"]
    assert [s.title for s in response.sources] == ["CFPB"]


def test_history_is_passed_between_system_and_query(make_llm) -> None:
    llm = make_llm()
    context = [{"role": "user", "content": "earlier q"}, {"role": "assistant", "content": "earlier a"}]
    _respond(_agent(llm, "career"), "What about my resume?", context)
    sent = llm.calls[-1]
    assert [m.type for m in sent] == ["system", "human", "ai", "human"]
    assert "Career Agent" in sent[0].content
    assert 'USER QUERY: "What about my resume?"' in sent[-1].content


def test_malformed_json_degrades_to_single_summary(make_llm) -> None:
    llm = make_llm(agents={"daily_task": "Sure! Try a five minute timer and start with the easiest part."})
    response = _respond(_agent(llm, "daily_task"), "I can't focus")
    assert response.summary == "Sure! Try a five minute timer and start with the easiest part."
    assert response.metadata.degraded
    assert response.breakdown is None
    assert response.resources == []


def test_completion_failure_raises_agent_unavailable(make_llm) -> None:
    llm = make_llm(agents={"career": RuntimeError("429 from provider")})
    with pytest.raises(AgentUnavailable):
        _respond(_agent(llm, "career"), "Help with my interview")


def test_explicit_plan_request_uses_secondary_breakdown(make_llm) -> None:
    llm = make_llm(
        agents={"daily_task": _answer(needsBreakdown=False)},
        breakdown={"breakdown": ["Clear the desk", "Sort papers", "File them"], "complexity": 5, "tips": ["Music helps"]},
    )
    response = _respond(_agent(llm, "daily_task"), "Give me a step by step plan to organize my desk")
    assert response.breakdown == ["Clear the desk", "Sort papers", "File them"]
    assert response.breakdown_tips == ["Music helps"]
    assert response.metadata.needs_breakdown


def test_failed_breakdown_call_uses_generic_plan(make_llm) -> None:
    llm = make_llm(agents={"daily_task": _answer()}, breakdown=RuntimeError("timeout"))
    response = _respond(_agent(llm, "daily_task"), "Break down cleaning my kitchen")
    assert response.breakdown == FALLBACK_BREAKDOWN


def test_low_energy_trims_breakdown(make_llm) -> None:
    steps = [f"Step {i} (5 min)" for i in range(1, 7)]
    llm = make_llm(agents={"daily_task": _answer(needsBreakdown=True, breakdown=steps)})
    response = _respond(_agent(llm, "daily_task"), "Help with laundry", user_context={"energy_level": "low"})
    assert response.breakdown == ["Step 1", "Step 2", "Step 3"]
    assert response.breakdown_tips


def test_greeting_never_gets_breakdown(make_llm) -> None:
    llm = make_llm(agents={"daily_task": _answer(needsBreakdown=True, breakdown=["a", "b"])})
    response = _respond(_agent(llm, "daily_task"), "hi there!")
    assert response.breakdown is None
    assert not response.metadata.needs_breakdown


def test_guardrails_from_config(make_llm) -> None:
    steps = [f"Step {i}" for i in range(10)]
    llm = make_llm(agents={"career": _answer(summary="word " * 50, needsBreakdown=True, breakdown=steps)})
    response = _respond(_agent(llm, "career", guardrails=["max 10 words", "max 4 steps"]), "resume tips")
    assert len(response.summary.split()) == 10
    assert response.breakdown == steps[:4]


def test_guardrail_parsing() -> None:
    assert parse_limits(["Max 220 words", "maximum 8 steps", "be kind"]) == {"word": 220, "step": 8}
    response = DomainResponse(domain="finance", summary="short")
    assert apply_guardrails(response, []) is response


def test_breakdown_keyword_helpers() -> None:
    assert explicitly_requests_breakdown("Walk me through applying for FAFSA")
    assert not explicitly_requests_breakdown("What is FAFSA?")
    assert is_simple_greeting("Hello!")
    assert is_simple_greeting("Thank you!")
    assert not is_simple_greeting("hello, I need help paying my rent this month")


def test_flagged_breakdown_without_steps_is_generated(make_llm) -> None:
    llm = make_llm(
        agents={"daily_task": _answer(needsBreakdown=True, breakdown=[])},
        breakdown={"breakdown": ["Pick up clothes", "Make the bed", "Clear the desk"], "complexity": 6},
    )
    response = _respond(_agent(llm, "daily_task"), "Help me clean my room")
    assert response.breakdown == ["Pick up clothes", "Make the bed", "Clear the desk"]
    assert response.metadata.needs_breakdown
    assert response.metadata.complexity == 6


def test_overwhelm_keywords_get_a_breakdown_even_when_model_skips_it(make_llm) -> None:
    llm = make_llm(agents={"career": _answer(needsBreakdown=False)})
    response = _respond(_agent(llm, "career"), "I'm overwhelmed by my job applications")
    assert response.breakdown == ["Open a blank note", "Write one sentence", "Send it"]


def test_non_numeric_fields_degrade_instead_of_failing(make_llm) -> None:
    llm = make_llm(agents={"finance": _answer(complexity=[3, 4])})
    response = _respond(_agent(llm, "finance"), "How do I budget?")
    assert response.metadata.degraded
    assert response.breakdown is None


def _analysis_then_plan(analysis):
    def reply(human):
        if human.startswith("Analyze this task"):
            return analysis
        return {"breakdown": ["Fill the watering can", "Water each plant"], "complexity": 2, "estimatedTime": "10 min"}

    return reply


def test_complexity_analysis(make_llm) -> None:
    explicit_llm = make_llm()
    explicit = asyncio.run(analyze_task_complexity(explicit_llm, "Give me a step by step plan for moving"))
    assert explicit.complexity == 7 and explicit.needs_breakdown
    assert explicit_llm.calls == []

    scored = asyncio.run(analyze_task_complexity(make_llm(breakdown={"complexity": 6}), "Plan a birthday party"))
    assert scored.needs_breakdown
    assert scored.complexity == 6

    failed = asyncio.run(analyze_task_complexity(make_llm(breakdown="not json"), "Do my taxes"))
    assert failed.needs_breakdown
    assert failed.complexity == 5


def test_planner_only_plans_when_it_helps(make_llm) -> None:
    simple = {"complexity": 2, "needsBreakdown": False, "reasoning": "One small action"}
    planner = BreakdownPlanner(make_llm(breakdown=_analysis_then_plan(simple)))

    skipped = asyncio.run(planner.plan("water the plants"))
    assert skipped.result is None
    assert skipped.analysis.complexity == 2

    forced = asyncio.run(planner.plan("water the plants", auto_breakdown=True))
    assert forced.result.breakdown == ["Fill the watering can", "Water each plant"]
    assert forced.result.estimated_time == "10 min"

    personal = asyncio.run(planner.plan("water the plants", auto_breakdown=True, ef_profile={"working_memory": True}))
    assert personal.result.tips == ["Keep this breakdown visible and tick steps off as you go"]
