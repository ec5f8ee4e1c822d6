#!/usr/bin/env python3
"""Send a query to the orchestrator from the command line. Prints query, recorded steps, and final answer."""
import argparse
import json
import os
import sys
from typing import Any

import httpx

ORCHESTRATOR_URL = os.environ.get("ORCHESTRATOR_BASE_URL", "http://127.0.0.1:8000")


def _trunc(s: str, max_len: int = 100) -> str:
    s = str(s)
    return (s[:max_len] + "…") if len(s) > max_len else s


def _trace(method: str, url: str, status: int | None, body: Any, trace: bool, max_body_len: int = 2000) -> None:
    if not trace:
        return
    print(f"[{method}] {url}" + (f" -> {status}" if status is not None else ""), flush=True)
    if body is not None:
        raw = json.dumps(body, indent=2) if isinstance(body, (dict, list)) else str(body)
        if len(raw) > max_body_len:
            raw = raw[:max_body_len] + "\n… (truncated)"
        print(raw, flush=True)
    print("---", flush=True)


def _json(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


def print_steps(steps: list[dict]) -> None:
    for step in steps:
        marker = "!" if step.get("finish_reason") == "error" else "·"
        print(f"  {marker} {step.get('human_action', '?')}: {_trunc(step.get('text', ''), 150)}", flush=True)


def main():
    parser = argparse.ArgumentParser(description="Send a query to the orchestrator. Prints query, step timeline, and final answer.")
    parser.add_argument("query", nargs="*", help="Query text (or pass as single argument)")
    parser.add_argument("--url", default=ORCHESTRATOR_URL, help="Orchestrator base URL")
    parser.add_argument("--instructions", default=None, help="Extra instructions for the planner")
    parser.add_argument("--trace", action="store_true", help="Print each URL, request body, and response")
    args = parser.parse_args()
    query = " ".join(args.query).strip()
    if not query:
        print("Usage: PYTHONPATH=. python scripts/query_cli.py \"Your question here\"", file=sys.stderr)
        sys.exit(1)

    base = args.url.rstrip("/")
    try:
        print("Query:", query, flush=True)
        print("---", flush=True)

        body = {"query": query, "instructions": args.instructions}
        _trace("POST", f"{base}/query", None, body, args.trace)
        r = httpx.post(f"{base}/query", json=body, timeout=300)
        data = _json(r)
        _trace("POST", f"{base}/query", r.status_code, data, args.trace)
        r.raise_for_status()
        data = data if isinstance(data, dict) else {}
        run_id = data.get("run_id")
        print("Run ID:", run_id, flush=True)
        print("Status:", data.get("status"), flush=True)

        if run_id:
            sr = httpx.get(f"{base}/runs/{run_id}/steps", timeout=10)
            steps_body = _json(sr)
            _trace("GET", f"{base}/runs/{run_id}/steps", sr.status_code, steps_body, args.trace)
            if sr.status_code == 200 and isinstance(steps_body, dict):
                print_steps(steps_body.get("steps") or [])
                print("---", flush=True)

        if data.get("answer"):
            print("Final answer:", flush=True)
            print(data["answer"], flush=True)
        if data.get("error"):
            print("Error:", data["error"], file=sys.stderr)
    except httpx.ConnectError:
        print(f"Cannot reach orchestrator at {args.url}. Is it running?", file=sys.stderr)
        sys.exit(1)
    except httpx.HTTPError as e:
        print(e, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
