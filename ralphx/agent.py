"""Agents that carry out one round of work and report a structured result."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ralphx.contracts import RoundResult, ValidationError, normalize_blockers
from ralphx.execx import CommandError, run_command

_JSON_WHITESPACE = " \t\n\r"


@dataclass
class AgentRequest:
    """Everything an agent needs for one round."""

    workdir: str | Path = ""
    prompt: str = ""
    output_schema_path: str | Path = ""
    raw_log_path: str | Path = ""
    extra_args: list[str] = field(default_factory=list)
    session_id: str = ""


@dataclass
class AgentResponse:
    """The agent's raw output, its parsed result and the session it used."""

    raw_output: bytes = b""
    parsed: RoundResult = field(default_factory=RoundResult)
    session_id: str = ""


class AgentError(Exception):
    """Raised when the agent fails or its output cannot be parsed.

    ``response`` holds whatever was collected before the failure.
    """

    def __init__(self, message: str, response: AgentResponse | None = None) -> None:
        super().__init__(message)
        self.response = response


class Agent(ABC):
    """Something that runs one round for a request."""

    @abstractmethod
    def run(self, request: AgentRequest, timeout: float | None = None) -> AgentResponse:
        """Run one round and return the agent's response."""


def _as_text(raw: bytes | str) -> str:
    return raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw


def _iter_json_values(text: str) -> Iterator[Any]:
    """Yield consecutive JSON values until the first one that does not decode."""
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


def _str_field(obj: Mapping[str, Any], key: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def extract_agent_message_and_session(raw: bytes | str) -> tuple[str, str]:
    """Pull the final agent message and the thread id out of a JSON event stream.

    When the stream holds no agent message, the whole output is the message.
    """
    text = _as_text(raw)
    message = ""
    session_id = ""
    for event in _iter_json_values(text):
        if event is None:
            continue
        if not isinstance(event, dict):
            break
        try:
            kind = _str_field(event, "type")
            thread_id = _str_field(event, "thread_id")
            item = event.get("item")
            if item is None:
                item = {}
            if not isinstance(item, dict):
                break
            item_type = _str_field(item, "type")
            item_text = _str_field(item, "text")
        except ValueError:
            break
        if kind == "thread.started" and thread_id.strip():
            session_id = thread_id
        if kind == "item.completed" and item_type == "agent_message" and item_text.strip():
            message = item_text
    if not message.strip():
        message = text
    return message.strip(), session_id.strip()


def _valid_result(value: Any) -> RoundResult | None:
    try:
        result = RoundResult.from_dict(value)
    except ValueError:
        return None
    result.blockers = normalize_blockers(result.blockers)
    try:
        result.validate()
    except ValidationError:
        return None
    return result


def extract_round_result(raw: bytes | str) -> RoundResult:
    """Find the first valid round result in ``raw``; raise AgentError if none."""
    text = _as_text(raw)
    for value in _iter_json_values(text):
        if not isinstance(value, dict):
            continue
        result = _valid_result(value)
        if result is not None:
            return result

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
            result = _valid_result(value)
            if result is not None:
                return result
    raise AgentError("could not parse JSON result")


@dataclass
class CodexAgent(Agent):
    """Runs the codex command line (or another command fed the prompt on stdin)."""

    command: str = "codex"

    def __post_init__(self) -> None:
        if not self.command.strip():
            self.command = "codex"

    def _arguments(self, request: AgentRequest) -> list[str]:
        args = list(request.extra_args)
        if self.command != "codex":
            return args
        common = ["--skip-git-repo-check", "--dangerously-bypass-approvals-and-sandbox"]
        if request.session_id.strip():
            return ["exec", "resume", request.session_id, *common, "--json", "-", *args]
        return [
            "exec",
            *common,
            "-C",
            str(request.workdir),
            "--json",
            "--output-schema",
            str(request.output_schema_path),
            "-",
            *args,
        ]

    def run(self, request: AgentRequest, timeout: float | None = None) -> AgentResponse:
        """Run one round; raise AgentError with the partial response on failure."""
        failure: CommandError | None = None
        try:
            raw = run_command(
                self.command,
                self._arguments(request),
                request.prompt,
                str(request.workdir),
                timeout,
            ).output
        except CommandError as exc:
            failure = exc
            raw = exc.result.output

        if str(request.raw_log_path):
            try:
                Path(request.raw_log_path).write_bytes(raw)
            except OSError:
                pass

        message, session_id = extract_agent_message_and_session(raw)
        if not session_id:
            session_id = request.session_id.strip()

        try:
            parsed = extract_round_result(message)
        except AgentError as parse_error:
            response = AgentResponse(raw_output=raw, session_id=session_id)
            if failure is not None:
                raise AgentError(
                    f"command error: {failure}; parse error: {parse_error}", response
                ) from failure
            raise AgentError(str(parse_error), response) from None

        response = AgentResponse(raw_output=raw, parsed=parsed, session_id=session_id)
        if failure is not None:
            raise AgentError(str(failure), response) from failure
        return response