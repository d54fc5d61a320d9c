"""Built-in prompt text and output schemas handed to the agent."""

from __future__ import annotations

import json
from pathlib import Path

_DEFAULT_PROMPT = """You are a coding agent driven by an outer loop that calls you once per round.

Work in small, verifiable steps. Treat the task file as the source of truth and
every unchecked checklist item as remaining work. Each round, either execute one
bounded step that changes files, or produce a concrete plan for the next step.
Report blockers honestly and only claim completion when the whole task is done.
"""

_LOOP_OUTPUT_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "required": [
        "status",
        "mode",
        "exit_signal",
        "files_modified",
        "tests_passed",
        "blockers",
        "summary",
        "next_step",
        "checklist_update",
    ],
    "properties": {
        "status": {"type": "string", "enum": ["in_progress", "blocked", "complete"]},
        "mode": {
            "type": "string",
            "enum": ["execute_next_step", "produce_plan", "blocked", "complete"],
        },
        "exit_signal": {"type": "boolean"},
        "files_modified": {"type": "integer", "minimum": 0},
        "tests_passed": {"type": "boolean"},
        "blockers": {"type": "array", "items": {"type": "string"}},
        "summary": {"type": "string"},
        "next_step": {"type": "string"},
        "checklist_update": {"type": "array", "items": {"type": "string"}},
    },
}

_PLAN_OUTPUT_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "required": ["title", "task_markdown", "checklist", "tests_cmd"],
    "properties": {
        "title": {"type": "string", "minLength": 1},
        "task_markdown": {"type": "string", "minLength": 1},
        "checklist": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "tests_cmd": {"type": "string"},
    },
}


def default_prompt() -> str:
    """Return the built-in loop prompt."""
    return _DEFAULT_PROMPT


def _ensure(root_dir: str | Path, override_path: str | Path, name: str, schema: dict) -> Path:
    if str(override_path):
        return Path(override_path)
    runtime = Path(root_dir) / "runtime"
    runtime.mkdir(parents=True, exist_ok=True)
    target = runtime / name
    target.write_text(json.dumps(schema, indent=2) + "\n", encoding="utf-8")
    return target


def ensure_schema_file(root_dir: str | Path, override_path: str | Path = "") -> Path:
    """Write the round-output schema under ``root_dir/runtime`` unless overridden."""
    return _ensure(root_dir, override_path, "loop-output.schema.json", _LOOP_OUTPUT_SCHEMA)


def ensure_plan_schema_file(root_dir: str | Path, override_path: str | Path = "") -> Path:
    """Write the planner-output schema under ``root_dir/runtime`` unless overridden."""
    return _ensure(root_dir, override_path, "plan-output.schema.json", _PLAN_OUTPUT_SCHEMA)