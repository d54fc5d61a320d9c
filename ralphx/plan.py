"""Turn a goal into a task file and checklist by asking the planner agent."""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ralphx.execx import CommandError, run_command
from ralphx.task import Bundle, load_bundle

_JSON_WHITESPACE = " \t\n\r"
_DONE_PREFIXES = ("- [x] ", "* [x] ", "- [X] ", "* [X] ")

_PLANNER_PROMPT = """You are planning a repository task for an outer-loop coding runner.

Goal:
{goal}

Workspace:
{workdir}

Produce exactly one JSON object that follows the provided schema.

Requirements:
- Convert the goal into a concrete task markdown file.
- Break the work into a short checklist of actionable implementation steps.
- Prefer 3-7 checklist items.
- Keep the task markdown concise and execution-oriented.
- Include a tests_cmd only if there is an obvious repo-local validation command; otherwise use an empty string.
- Do not output markdown fences.
- Do not output commentary outside JSON.
"""


class PlanError(Exception):
    """Raised when planning fails or the planner's output is unusable.

    ``raw`` holds the planner's raw output, and ``output`` the parsed plan
    when the command failed after producing a valid one.
    """

    def __init__(
        self, message: str, raw: bytes = b"", output: PlanOutput | None = None
    ) -> None:
        super().__init__(message)
        self.raw = raw
        self.output = output


def _get_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


@dataclass
class PlanOutput:
    """The planner's answer: a task file, a checklist and a test command."""

    title: str = ""
    task_markdown: str = ""
    checklist: list[str] = field(default_factory=list)
    tests_cmd: str = ""

    def validate(self) -> None:
        """Raise PlanError if a required part is missing or blank."""
        if not self.title.strip():
            raise PlanError("missing title")
        if not self.task_markdown.strip():
            raise PlanError("missing task_markdown")
        for index, item in enumerate(self.checklist):
            if not item.strip():
                raise PlanError(f"checklist item {index} is empty")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PlanOutput:
        """Build a plan from decoded JSON; raise ValueError on wrong types."""
        if not isinstance(data, Mapping):
            raise ValueError("plan output must be a JSON object")
        checklist = data.get("checklist")
        if checklist is None:
            checklist = []
        if not isinstance(checklist, list) or not all(isinstance(i, str) for i in checklist):
            raise ValueError("field 'checklist' must be a list of strings")
        return cls(
            title=_get_str(data, "title"),
            task_markdown=_get_str(data, "task_markdown"),
            checklist=list(checklist),
            tests_cmd=_get_str(data, "tests_cmd"),
        )


@dataclass
class PlanRequest:
    """Inputs for one planning call."""

    goal: str = ""
    workdir: str | Path = ""
    codex_cmd: str = "codex"
    codex_args: list[str] = field(default_factory=list)
    output_schema_path: str | Path = ""
    raw_log_path: str | Path = ""


@dataclass
class ReplanRequest:
    """Inputs for regenerating an existing task and checklist."""

    task_path: str | Path = ""
    checklist_path: str | Path = ""
    summary_path: str | Path = ""
    state_path: str | Path = ""
    workdir: str | Path = ""
    codex_cmd: str = "codex"
    codex_args: list[str] = field(default_factory=list)
    output_schema_path: str | Path = ""
    raw_log_path: str | Path = ""
    preserve_completed: bool = True


def _iter_json_values(text: str) -> Iterator[Any]:
    decoder = json.JSONDecoder()
    pos = 0
    end = len(text)
    while True:
        while pos < end and text[pos] in _JSON_WHITESPACE:
            pos += 1
        if pos >= end:
            return
        try:
            value, pos = decoder.raw_decode(text, pos)
        except ValueError:
            return
        yield value


def _valid_output(value: Any) -> PlanOutput | None:
    try:
        output = PlanOutput.from_dict(value)
    except ValueError:
        return None
    try:
        output.validate()
    except PlanError:
        return None
    return output


def extract_output(raw: bytes | str) -> PlanOutput:
    """Find the first valid plan in ``raw``; raise PlanError if there is none."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    for value in _iter_json_values(text):
        if not isinstance(value, dict):
            continue
        output = _valid_output(value)
        if output is not None:
            return output

    closes = [pos + 1 for pos, char in enumerate(text) if char == "}"]
    for start, char in enumerate(text):
        if char != "{":
            continue
        for end in reversed(closes):
            if end <= start:
                break
            try:
                value = json.loads(text[start:end])
            except ValueError:
                continue
            output = _valid_output(value)
            if output is not None:
                return output
    raise PlanError("could not parse planner JSON result")


def _build_prompt(goal: str, workdir: str) -> str:
    return _PLANNER_PROMPT.format(goal=goal.strip(), workdir=workdir)


def run_plan(request: PlanRequest, timeout: float | None = None) -> tuple[PlanOutput, bytes]:
    """Ask the planner for a plan; return it with the raw planner output."""
    if not request.goal.strip():
        raise PlanError("goal is required")
    workdir = str(request.workdir)
    if not workdir.strip():
        raise PlanError("workdir is required")

    prompt = _build_prompt(request.goal, workdir)
    command = request.codex_cmd.strip() or "codex"
    args = list(request.codex_args)
    if command == "codex":
        args = [
            "exec",
            "--skip-git-repo-check",
            "--dangerously-bypass-approvals-and-sandbox",
            "-C",
            workdir,
            "--output-schema",
            str(request.output_schema_path),
            "-o",
            str(request.raw_log_path),
            "-",
            *args,
        ]

    failure: CommandError | None = None
    try:
        raw = run_command(command, args, prompt, workdir, timeout).output
    except CommandError as exc:
        failure = exc
        raw = exc.result.output

    if str(request.raw_log_path):
        log = Path(request.raw_log_path)
        try:
            logged = log.read_bytes()
        except OSError:
            logged = b""
        if logged:
            raw = logged
        elif raw:
            try:
                log.write_bytes(raw)
            except OSError:
                pass

    try:
        parsed = extract_output(raw)
    except PlanError as parse_error:
        if failure is not None:
            raise PlanError(
                f"command error: {failure}; parse error: {parse_error}", raw
            ) from failure
        raise PlanError(str(parse_error), raw) from None
    if failure is not None:
        raise PlanError(str(failure), raw, parsed) from failure
    return parsed, raw


def _ext(path: str) -> str:
    name = os.path.basename(path)
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def checklist_path(task_path: str | Path) -> str:
    """Return the checklist path that belongs next to a task file."""
    task = str(task_path)
    if _ext(task) != ".md":
        return task + ".checklist.md"
    return task[: -len(".md")] + ".checklist.md"


def _render_checklist(title: str, items: Iterable[str]) -> str:
    lines = [f"# {title.strip()} checklist", ""]
    lines.extend("- [ ] " + item.strip() for item in items)
    return "\n".join(lines) + "\n"


def write_files(task_path: str | Path, output: PlanOutput) -> tuple[str, str]:
    """Write the task and its checklist; return both absolute paths."""
    if not str(task_path).strip():
        raise PlanError("task path is required")
    output.validate()

    task_abs = os.path.abspath(task_path)
    checklist_abs = checklist_path(task_abs)
    Path(task_abs).parent.mkdir(parents=True, exist_ok=True)
    Path(checklist_abs).parent.mkdir(parents=True, exist_ok=True)

    Path(task_abs).write_text(output.task_markdown.strip() + "\n", encoding="utf-8")
    Path(checklist_abs).write_text(
        _render_checklist(output.title, output.checklist), encoding="utf-8"
    )
    return task_abs, checklist_abs


def _build_replan_goal(bundle: Bundle) -> str:
    parts = [
        "Replan the current repository task.\n\n",
        "Current task file:\n",
        bundle.task.content.strip(),
        "\n\n",
    ]
    sections = (
        ("Current checklist:\n", bundle.checklist.content),
        ("Previous summary:\n", bundle.state.summary),
        ("Current state snapshot:\n", bundle.state.state),
    )
    for heading, body in sections:
        if body.strip():
            parts.extend([heading, body.strip(), "\n\n"])
    parts.append(
        "Generate the next best task markdown and checklist for continuing this work. "
        "Keep the remaining scope concrete and execution-ready."
    )
    return "".join(parts)


def replan(
    request: ReplanRequest, timeout: float | None = None
) -> tuple[PlanOutput, Bundle, bytes]:
    """Regenerate a plan from the current task, checklist and loop state."""
    bundle = load_bundle(
        request.task_path, request.checklist_path, request.summary_path, request.state_path
    )
    output, raw = run_plan(
        PlanRequest(
            goal=_build_replan_goal(bundle),
            workdir=request.workdir,
            codex_cmd=request.codex_cmd,
            codex_args=list(request.codex_args),
            output_schema_path=request.output_schema_path,
            raw_log_path=request.raw_log_path,
        ),
        timeout,
    )
    if request.preserve_completed and bundle.checklist.content.strip():
        output.checklist = merge_checklist(bundle.checklist.content, output.checklist)
    return output, bundle, raw


def _completed_texts(content: str) -> list[str]:
    out = []
    for line in content.split("\n"):
        trimmed = line.strip()
        if trimmed.startswith(_DONE_PREFIXES):
            out.append(trimmed[6:].strip())
    return out


def _normalize(text: str) -> str:
    return " ".join(text.split()).lower()


def merge_checklist(existing: str, next_items: Sequence[str]) -> list[str]:
    """Keep completed items from ``existing`` first, then add the new ones.

    Items that match after normalising case and spacing are kept once.
    """
    completed = _completed_texts(existing)
    if not completed:
        return list(next_items)
    seen: set[str] = set()
    merged: list[str] = []
    for item in [*completed, *next_items]:
        key = _normalize(item)
        if not key or key in seen:
            continue
        seen.add(key)
        merged.append(item)
    return merged


def default_replan_paths(workdir: str | Path, state_dir: str | Path = "") -> tuple[str, str]:
    """Return the summary and state file paths under the state directory."""
    root = str(state_dir)
    if not root.strip():
        root = os.path.join(str(workdir), ".ralphx")
    return os.path.join(root, "summary.txt"), os.path.join(root, "state.json")


def ensure_log_dir(path: str | Path) -> None:
    """Create the directory that will hold ``path``."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)