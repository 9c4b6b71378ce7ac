#!/usr/bin/env python3
"""
Shared CLI plumbing for the `python -m mood_engine.<component>.main` entry points.

Payload shape: {"meta": {...}, "data": {...}} from --payload FILE or stdin.
"""
import argparse
import json
import sys
import time
from typing import Any, Callable, Dict, List


def base_parser(description: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description=description)
    p.add_argument("--payload", type=str, default=None, help="Path to JSON payload (default: stdin)")
    p.add_argument("--explain-verbose", action="store_true")
    return p


def nb_stdin(default: Dict[str, Any]) -> Dict[str, Any]:
    """Read a JSON payload from stdin if one is piped in."""
    if sys.stdin and not sys.stdin.isatty():
        raw = sys.stdin.read()
        if raw.strip():
            return json.loads(raw)
    return default


def load_payload(args: argparse.Namespace) -> Dict[str, Any]:
    default_payload = {"meta": {}, "data": {}}
    if args.payload:
        with open(args.payload, "r", encoding="utf-8") as f:
            return json.load(f)
    return nb_stdin(default_payload)


def run_agent(
    agent_id: str,
    agent_version: str,
    parser: argparse.ArgumentParser,
    run: Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]],
    argv: List[str],
) -> None:
    """Parse args, run, write JSON to stdout; on failure write {"ok": false} and exit 1."""
    t0 = time.time()
    try:
        args = parser.parse_args(argv)
        payload = load_payload(args)
        meta = payload.get("meta", {}) or {}
        for key, value in vars(args).items():
            if key != "payload" and value not in (None, False):
                meta[key] = value

        res = run(payload, meta)
        res["version"] = f"{agent_id}@{agent_version}"
        res["latency_ms"] = int((time.time() - t0) * 1000)

        sys.stdout.write(json.dumps(res, ensure_ascii=False, default=str))
        sys.stdout.flush()
    except Exception as e:
        sys.stderr.write(f"{agent_id} error: {e}\n")
        sys.stdout.write(json.dumps({"ok": False, "error": str(e)}))
        sys.stdout.flush()
        sys.exit(1)
