"""Stop-guard decisions and the hook inputs they are made from."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ralphx.contracts import RoundResult, RoundStatus
from ralphx.state import RunState
from ralphx.task import load_bundle


class Event(str, Enum):
    SESSION_START = "session-start"
    PROMPT_SUBMIT = "prompt-submit"
    PRE_TOOL_USE = "pre-tool-use"
    POST_TOOL_USE = "post-tool-use"
    TURN_COMPLETE = "turn-complete"
    STOP = "stop"
    SESSION_END = "session-end"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class GuardConfig:
    """Which conditions block an agent from stopping."""

    enabled: bool = True
    block_when_checklist_open: bool = True
    block_when_verification_miss: bool = True
    block_when_incomplete: bool = True


@dataclass
class GuardInput:
    """What the guard knows about the task when the agent wants to stop."""

    event: Event = Event.STOP
    result: RoundResult = field(default_factory=RoundResult)
    checklist_open: int = 0
    tests_required: bool = False
    tests_passed_now: bool = False


@dataclass(frozen=True)
class Decision:
    """Whether stopping is allowed, and why not."""

    allow: bool
    reason: str = ""
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"Allow": self.allow, "Reason": self.reason, "Message": self.message}


class NoTaskContext(LookupError):
    """Raised when neither a task path nor a recorded state names a task."""

    def __init__(self, message: str = "no task context available") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class PromptSubmitPayload:
    """The JSON a prompt-submit hook receives."""

    hook_event_name: str = ""
    cwd: str = ""
    prompt: str = ""
    input: str = ""
    user_prompt: str = ""
    text: str = ""


def evaluate_stop_guard(config: GuardConfig, guard_input: GuardInput) -> Decision:
    """Decide whether the agent may stop now."""
    if not config.enabled:
        return Decision(allow=True)

    if config.block_when_incomplete and guard_input.result.status in (
        RoundStatus.IN_PROGRESS,
        RoundStatus.BLOCKED,
    ):
        return Decision(
            allow=False,
            reason="task_incomplete",
            message=(
                "Do not stop yet. Continue by executing the next bounded step "
                "or producing a concrete next-step plan."
            ),
        )

    if config.block_when_checklist_open and guard_input.checklist_open > 0:
        return Decision(
            allow=False,
            reason="checklist_open",
            message=(
                f"Checklist still has {guard_input.checklist_open} open items. "
                "Continue the current branch of work."
            ),
        )

    if (
        config.block_when_verification_miss
        and guard_input.tests_required
        and not guard_input.tests_passed_now
    ):
        return Decision(
            allow=False,
            reason="verification_missing",
            message=(
                "Verification evidence is missing or stale. "
                "Run the required checks before stopping."
            ),
        )

    return Decision(allow=True)


def _read_run_state(path: str | Path) -> RunState | None:
    try:
        return RunState.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
    except (OSError, ValueError):
        return None


def _infer_task_paths(task_path: str, checklist_path: str, state_path: str) -> tuple[str, str]:
    if task_path.strip() or not state_path:
        return task_path, checklist_path
    run_state = _read_run_state(state_path)
    if run_state is not None:
        task_path = run_state.task_file
        if not checklist_path.strip():
            checklist_path = run_state.checklist_file
    return task_path, checklist_path


def _load_result(state_path: str, last_result_path: str) -> RoundResult:
    if last_result_path:
        try:
            data = json.loads(Path(last_result_path).read_text(encoding="utf-8"))
            return RoundResult.from_dict(data)
        except (OSError, ValueError):
            pass
    if state_path:
        run_state = _read_run_state(state_path)
        if run_state is not None:
            return run_state.result
    return RoundResult()


def load_stop_guard_input(
    task_path: str | Path,
    checklist_path: str | Path,
    summary_path: str | Path,
    state_path: str | Path,
    last_result_path: str | Path,
    tests_required: bool = False,
    tests_passed_now: bool = False,
) -> GuardInput:
    """Gather the guard's input; raise NoTaskContext when no task is known."""
    task, checklist = _infer_task_paths(str(task_path), str(checklist_path), str(state_path))
    if not task.strip():
        raise NoTaskContext()
    bundle = load_bundle(task, checklist, summary_path, state_path)
    result = _load_result(str(state_path), str(last_result_path))
    return GuardInput(
        event=Event.STOP,
        result=result,
        checklist_open=bundle.checklist.open_items,
        tests_required=tests_required,
        tests_passed_now=tests_passed_now,
    )


def load_prompt_submit_payload(path: str | Path = "") -> PromptSubmitPayload:
    """Read the payload from ``path``, or from standard input when empty."""
    if str(path).strip():
        text = Path(path).read_text(encoding="utf-8")
    else:
        text = sys.stdin.read()
    data = json.loads(text)
    if data is None:
        return PromptSubmitPayload()
    if not isinstance(data, dict):
        raise ValueError("prompt-submit payload must be a JSON object")
    values: dict[str, str] = {}
    for key in ("hook_event_name", "cwd", "prompt", "input", "user_prompt", "text"):
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValueError(f"field {key!r} must be a string")
        values[key] = value
    return PromptSubmitPayload(**values)


def prompt_text(payload: PromptSubmitPayload) -> str:
    """Return the first non-blank prompt field."""
    for value in (payload.prompt, payload.input, payload.user_prompt, payload.text):
        if value.strip():
            return value
    return ""


def prompt_activates_ralphx(text: str) -> bool:
    lower = text.lower()
    return "$ralphx" in lower or " ralphx" in lower or lower.startswith("ralphx ")