#!/usr/bin/env python3
"""
Intent probe for fast validation of user questions.

Default behavior:
- Classify each question
- Resolve the effective oracle kind (optionally with --oracle selection)
- Show the collection request that would be sent

Optional:
- Send the request through the command center (--execute) for end-to-end checks.

Questions file: .txt (one per line, '#' comments) or .json array of strings
or {"question": ..., "expected": {"kind": ..., "parameters": {...}}} objects.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from gateway.http_gateway import build_collect_request
from intent.classifier import classify, resolve_intent
from main import build_pipeline
from shared.models import OracleKind


def _load_questions(args: argparse.Namespace) -> list[dict[str, Any]]:
    questions: list[dict[str, Any]] = [
        {"question": text.strip(), "expected": {}} for text in args.question if str(text).strip()
    ]

    if args.questions_file:
        raw = Path(args.questions_file).read_text(encoding="utf-8")
        if args.questions_file.endswith(".json"):
            payload = json.loads(raw)
            if not isinstance(payload, list):
                raise ValueError("--questions-file .json must contain a JSON array")
            for item in payload:
                if isinstance(item, str) and item.strip():
                    questions.append({"question": item.strip(), "expected": {}})
                elif isinstance(item, dict) and str(item.get("question", "")).strip():
                    expected = item.get("expected", {})
                    questions.append({
                        "question": str(item["question"]).strip(),
                        "expected": expected if isinstance(expected, dict) else {},
                    })
        else:
            for line in raw.splitlines():
                text = line.strip()
                if text and not text.startswith("#"):
                    questions.append({"question": text, "expected": {}})

    seen: set[str] = set()
    dedup: list[dict[str, Any]] = []
    for item in questions:
        if item["question"] in seen:
            continue
        seen.add(item["question"])
        dedup.append(item)
    return dedup


def _evaluate_expected(expected: dict[str, Any], intent_payload: dict[str, Any] | None) -> dict[str, Any]:
    checks: list[dict[str, Any]] = []
    actual_kind = intent_payload.get("kind") if intent_payload else None
    actual_params = intent_payload.get("parameters", {}) if intent_payload else {}

    if "kind" in expected:
        checks.append({"name": "kind", "ok": actual_kind == expected["kind"], "actual": actual_kind, "expected": expected["kind"]})
    wanted_params = expected.get("parameters")
    if isinstance(wanted_params, dict):
        for key, wanted in wanted_params.items():
            actual = actual_params.get(key)
            checks.append({"name": f"parameters.{key}", "ok": actual == wanted, "actual": actual, "expected": wanted})

    failures = [check["name"] for check in checks if not check["ok"]]
    return {"ok": not failures, "failed_checks": failures, "checks": checks}


async def _run_probe(args: argparse.Namespace) -> int:
    questions = _load_questions(args)
    if not questions:
        print("No questions given (use --question or --questions-file).", file=sys.stderr)
        return 2

    selected = OracleKind(args.oracle) if args.oracle else None
    command_center = None
    if args.execute:
        _cli, command_center = build_pipeline(session_id="probe")
        command_center.select_oracle(selected)

    report: list[dict[str, Any]] = []
    had_failures = False
    for item in questions:
        question = item["question"]
        inferred = classify(question)
        effective = resolve_intent(question, selected)
        intent_payload = effective.model_dump(mode="json") if effective else None
        entry: dict[str, Any] = {
            "question": question,
            "inferred": inferred.model_dump(mode="json") if inferred else None,
            "intent": intent_payload,
            "request": build_collect_request(effective.kind, effective.parameters).to_wire() if effective else None,
        }

        if item["expected"]:
            evaluation = _evaluate_expected(item["expected"], intent_payload)
            entry["expected_eval"] = evaluation
            had_failures = had_failures or not evaluation["ok"]

        if command_center is not None:
            entry_id = await command_center.handle_user_message(question)
            resolved = command_center.store.get(entry_id) if entry_id else None
            entry["output"] = {"status": resolved.status, "text": resolved.text} if resolved else None

        report.append(entry)

    if args.output_json:
        Path(args.output_json).write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")

    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 1 if had_failures else 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Probe intent routing for multiple questions.")
    parser.add_argument("--question", action="append", default=[], help="Question text (can be repeated).")
    parser.add_argument("--questions-file", default="", help="Path to .txt or .json with questions.")
    parser.add_argument("--oracle", default="", help="Explicit oracle selection (price_feed, weather, space).")
    parser.add_argument("--execute", action="store_true", help="Also query the oracle service end-to-end.")
    parser.add_argument("--output-json", default="", help="Optional path to write report JSON.")
    args = parser.parse_args()

    try:
        return asyncio.run(_run_probe(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
