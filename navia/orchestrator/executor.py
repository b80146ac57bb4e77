"""Dispatch one query to each candidate domain agent concurrently and collect AgentOutcomes."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from navia.agent.base import DomainAgent
from navia.core.contracts.agent import DomainResponse

log = logging.getLogger("executor")


@dataclass
class AgentOutcome:
    domain: str
    response: DomainResponse | None
    status: str  # "success" | "failed"
    latency_ms: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success" and self.response is not None


def _preview(text: str, max_len: int = 100) -> str:
    return (text[:max_len] + "…") if len(text) > max_len else text


async def run_agent(
    agent: DomainAgent | None,
    domain: str,
    query: str,
    context: list[dict[str, str]],
    user_context: dict[str, Any],
    timeout_s: float,
) -> AgentOutcome:
    if agent is None:
        log.warning("← %s: no agent registered", domain)
        return AgentOutcome(domain=domain, response=None, status="failed", latency_ms=0, error="Agent not found")
    log.info("→ %s: %s", domain, _preview(query))
    start = time.perf_counter()
    try:
        response = await asyncio.wait_for(agent.respond(query, context, user_context), timeout=timeout_s)
    except asyncio.TimeoutError:
        latency_ms = int((time.perf_counter() - start) * 1000)
        log.warning("← %s: timed out (%s ms)", domain, latency_ms)
        return AgentOutcome(domain=domain, response=None, status="failed", latency_ms=latency_ms, error="timeout")
    except Exception as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        log.warning("← %s: failed %s (%s ms)", domain, e, latency_ms)
        return AgentOutcome(domain=domain, response=None, status="failed", latency_ms=latency_ms, error=str(e))
    latency_ms = int((time.perf_counter() - start) * 1000)
    log.info("← %s: %s (%s ms)", domain, response.summary_preview(), latency_ms)
    return AgentOutcome(domain=domain, response=response, status="success", latency_ms=latency_ms)


async def run_agents(
    agents: dict[str, DomainAgent],
    domains: list[str],
    query: str,
    context: list[dict[str, str]],
    user_context: dict[str, Any],
    timeout_s: float = 90.0,
) -> list[AgentOutcome]:
    """Fan out to every domain at once; outcomes come back in the order of `domains`."""
    return list(
        await asyncio.gather(
            *(run_agent(agents.get(d), d, query, context, user_context, timeout_s) for d in domains)
        )
    )
