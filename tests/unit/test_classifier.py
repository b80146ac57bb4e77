from __future__ import annotations

import asyncio

from navia.orchestrator.classifier import IntentClassifier, is_follow_up, keyword_domain


def _classify(llm, query, turns=(), depth=6, previous_domain=None):
    classifier = IntentClassifier(llm)
    return asyncio.run(classifier.classify(query, list(turns), depth, previous_domain=previous_domain))


def test_empty_history_classification_is_deterministic(make_llm) -> None:
    llm = make_llm(intent={"domains": ["finance", "career"], "confidence": 0.9, "complexity": 6})
    first = _classify(llm, "How do I budget my first salary?", depth=0)
    second = _classify(llm, "How do I budget my first salary?", depth=0)

    assert first.domains == ["finance", "career"]
    assert first.primary == second.primary == "finance"
    assert first.complexity == 6
    assert not first.fallback


def test_completion_failure_falls_back_to_daily_task(make_llm) -> None:
    result = _classify(make_llm(intent=RuntimeError("provider down")), "anything at all")
    assert result.domains == ["daily_task"]
    assert result.fallback
    assert result.confidence == 0.5


def test_malformed_or_unknown_domains_fall_back(make_llm) -> None:
    assert _classify(make_llm(intent="not json"), "help").fallback
    result = _classify(make_llm(intent={"domains": ["travel"]}), "book a flight")
    assert result.domains == ["daily_task"]
    assert result.fallback


def test_domains_are_normalized_and_deduplicated(make_llm) -> None:
    llm = make_llm(intent={"domains": ["Daily-Task", "career", "career", "weather"]})
    assert _classify(llm, "Plan my job search week").domains == ["daily_task", "career"]


def test_follow_up_keeps_previous_domain(make_llm) -> None:
    llm = make_llm(intent={"domains": ["daily_task"]})
    turns = [
        {"role": "user", "content": "Help me set up my LinkedIn"},
        {"role": "assistant", "content": "Start with your headline."},
    ]
    result = _classify(llm, "what about that?", turns, previous_domain="career")
    assert result.primary == "career"
    assert result.domains == ["career", "daily_task"]


def test_follow_up_without_stored_domain_uses_routing_keywords(make_llm) -> None:
    llm = make_llm(intent={"domains": ["daily_task"]})
    turns = [
        {"role": "user", "content": "Can you help me create a budget for rent and bills?"},
        {"role": "assistant", "content": "Sure, let's list your income first."},
    ]
    assert _classify(llm, "Which one should I pick?", turns).primary == "finance"


def test_new_topic_is_not_treated_as_follow_up(make_llm) -> None:
    llm = make_llm(intent={"domains": ["daily_task"]})
    turns = [{"role": "user", "content": "Help me with my resume"}]
    query = "I keep forgetting to take out the trash every single week"
    assert _classify(llm, query, turns, previous_domain="career").primary == "daily_task"


def test_breakdown_keywords_force_needs_breakdown(make_llm) -> None:
    llm = make_llm(intent={"domains": ["daily_task"], "needsBreakdown": False})
    assert _classify(llm, "I'm overwhelmed, where do I start with my apartment?").needs_breakdown
    assert not _classify(llm, "What is a good focus app?").needs_breakdown


def test_history_depth_limits_turns_sent_to_model(make_llm) -> None:
    llm = make_llm(intent={"domains": ["career"]})
    turns = [{"role": "user", "content": f"message {i}"} for i in range(10)]
    _classify(llm, "next question", turns, depth=2)
    sent = llm.calls[-1]
    # system + two history turns + current query
    assert len(sent) == 4
    assert sent[1].content == "message 8"


def test_is_follow_up() -> None:
    assert is_follow_up("what about that?")
    assert is_follow_up("Tell me more")
    assert is_follow_up("that one sounds good")
    assert not is_follow_up("How do I ask my manager for a raise next month?")
    assert not is_follow_up("Help me write a cover letter please")


def test_keyword_domain_prefers_most_recent_turn() -> None:
    turns = [
        {"role": "user", "content": "my budget is a mess"},
        {"role": "user", "content": "also my resume needs work"},
    ]
    assert keyword_domain(turns) == "career"
    assert keyword_domain([{"role": "user", "content": "hello there"}]) is None
