#!/usr/bin/env python3
"""Send a query to the orchestrator from the command line. Prints domains, summary, breakdown and task ids."""
import argparse
import json
import os
import sys
import uuid
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

import httpx

from navia.orchestrator.streaming import is_done_frame, parse_frame

ORCHESTRATOR_URL = os.environ.get("ORCHESTRATOR_BASE_URL", "http://127.0.0.1:8000")


def _trace_request(method: str, url: str, body: dict | None, trace: bool) -> None:
    if not trace:
        return
    print(f"[REQUEST] {method} {url}", flush=True)
    if body is not None:
        print("[REQUEST BODY]", flush=True)
        print(json.dumps(body, indent=2), flush=True)
    print(flush=True)


def _trace_response(status: int, body: Any, trace: bool, max_body_len: int = 2000) -> None:
    if not trace:
        return
    print(f"[RESPONSE] {status}", flush=True)
    if body is not None:
        raw = json.dumps(body, indent=2) if isinstance(body, dict) else str(body)
        if len(raw) > max_body_len:
            raw = raw[:max_body_len] + "\n… (truncated)"
        print("[RESPONSE BODY]", flush=True)
        print(raw, flush=True)
    print("---", flush=True)


def print_result(data: dict) -> None:
    print("Domains:", ", ".join(data.get("domains") or []) or "(none)", flush=True)
    print("---", flush=True)
    print(data.get("summary") or "(empty)", flush=True)
    breakdown = data.get("breakdown") or []
    if breakdown:
        print("---", flush=True)
        print("Breakdown:", flush=True)
        for i, step in enumerate(breakdown, 1):
            print(f"  {i}. {step}", flush=True)
    for link in data.get("resources") or []:
        print(f"  • {link.get('title')}: {link.get('url')}", flush=True)
    if data.get("taskIds"):
        print("Task IDs:", ", ".join(data["taskIds"]), flush=True)
    meta = data.get("metadata") or {}
    print(f"({meta.get('executionTime')} ms, message {meta.get('messageId')})", flush=True)


def run_query(base: str, headers: dict, query: str, session_id: str, trace: bool) -> None:
    url = f"{base}/query"
    body = {"query": query, "session_id": session_id, "sessionMessages": [], "userContext": {}}
    _trace_request("POST", url, body, trace)
    r = httpx.post(url, json=body, headers=headers, timeout=120)
    try:
        resp_body = r.json()
    except ValueError:
        resp_body = r.text
    _trace_response(r.status_code, resp_body, trace)
    r.raise_for_status()
    print_result(resp_body if isinstance(resp_body, dict) else {})


def run_stream(base: str, headers: dict, query: str, session_id: str, trace: bool) -> None:
    url = f"{base}/chat/stream"
    body = {"session_id": session_id, "messages": [{"role": "user", "content": query}]}
    _trace_request("POST", url, body, trace)
    with httpx.stream("POST", url, json=body, headers=headers, timeout=120) as r:
        r.raise_for_status()
        for line in r.iter_lines():
            if is_done_frame(line):
                break
            token = parse_frame(line)
            if token:
                print(token, end="", flush=True)
    print(flush=True)


def main():
    parser = argparse.ArgumentParser(description="Send a query to the orchestrator and print the answer.")
    parser.add_argument("query", nargs="*", help="Query text (or pass as single argument)")
    parser.add_argument("--url", default=ORCHESTRATOR_URL, help="Orchestrator base URL")
    parser.add_argument("--user", default=os.environ.get("NAVIA_USER_ID", "cli-user"), help="User id sent as X-User-Id")
    parser.add_argument("--session", default=None, help="Session id (default: a new one)")
    parser.add_argument("--stream", action="store_true", help="Use the streamed companion chat instead of /query")
    parser.add_argument("--trace", action="store_true", help="Print each URL, request body and response")
    args = parser.parse_args()
    query = " ".join(args.query).strip()
    if not query:
        print("Usage: PYTHONPATH=. python scripts/query_cli.py \"Your question here\"", file=sys.stderr)
        sys.exit(1)

    base = args.url.rstrip("/")
    headers = {"X-User-Id": args.user}
    session_id = args.session or f"cli-{uuid.uuid4().hex[:8]}"
    try:
        print("Query:", query, flush=True)
        print("Session:", session_id, flush=True)
        print("---", flush=True)
        if args.stream:
            run_stream(base, headers, query, session_id, args.trace)
        else:
            run_query(base, headers, query, session_id, args.trace)
    except httpx.ConnectError:
        print(f"Cannot reach orchestrator at {args.url}. Is it running?", file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(e, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
