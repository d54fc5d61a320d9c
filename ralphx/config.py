"""Settings for a loop run, read from the environment and command-line flags."""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any


class ArgumentError(ValueError):
    """Raised when the command-line flags cannot be parsed."""


@dataclass
class RunConfig:
    """Everything the loop needs to run a task.

    ``auto_replan`` is off unless asked for; ``parse_run_args`` turns it on
    by default.
    """

    task_file: str = ""
    checklist_file: str = ""
    workdir: str = ""
    prompt_file: str = ""
    output_schema_file: str = ""
    tests_cmd: str = ""
    codex_cmd: str = "codex"
    codex_args: list[str] = field(default_factory=list)
    state_dir: str = ""
    workers: int = 1
    max_iterations: int = 30
    max_no_progress: int = 3
    round_timeout: timedelta = timedelta(seconds=1800)
    resume_session: bool = False
    session_expiry: timedelta = timedelta(hours=24)
    auto_replan: bool = False


_DECIMAL = re.compile(r"[+-]?[0-9]+")
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``90s``, ``1h30m`` or ``-1.5m``."""
    original = text
    rest = text
    negative = False
    if rest[:1] in ("-", "+"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'time: invalid duration "{original}"')
    total = Decimal(0)
    while rest:
        match = _COMPONENT.match(rest)
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise ValueError(f'time: invalid duration "{original}"')
        if not unit:
            raise ValueError(f'time: missing unit in duration "{original}"')
        nanos = _UNIT_NANOS.get(unit)
        if nanos is None:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{original}"')
        number = Decimal(whole or "0")
        if frac:
            number += Decimal("0." + frac)
        total += number * nanos
        rest = rest[match.end():]
    micros = int(total / 1000)
    return timedelta(microseconds=-micros if negative else micros)


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(text)


def _parse_int(text: str) -> int:
    if text != text.strip():
        raise ValueError(text)
    return int(text, 0)


def env_or(key: str, fallback: str) -> str:
    """Return the variable's value, or ``fallback`` when unset or empty."""
    return os.environ.get(key) or fallback


def env_int(key: str, fallback: int) -> int:
    value = os.environ.get(key, "")
    if not _DECIMAL.fullmatch(value):
        return fallback
    return int(value)


def env_bool(key: str, fallback: bool) -> bool:
    value = os.environ.get(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return fallback


def env_seconds(key: str, fallback: int) -> timedelta:
    return timedelta(seconds=env_int(key, fallback))


def env_hours(key: str, fallback: int) -> timedelta:
    return timedelta(hours=env_int(key, fallback))


def split_args(value: str) -> list[str]:
    """Split on whitespace; an empty or blank string gives no arguments."""
    return value.split()


def _parse_flags(
    args: Sequence[str], specs: dict[str, Callable[[str], Any] | None]
) -> dict[str, Any]:
    """Parse single- or double-dash flags; ``None`` marks a boolean flag.

    Parsing stops at the first argument that is not a flag, or after ``--``.
    """
    values: dict[str, Any] = {}
    remaining = iter(args)
    for arg in remaining:
        if len(arg) < 2 or arg[0] != "-":
            break
        body = arg[1:]
        if body.startswith("-"):
            body = body[1:]
            if not body:
                break
        if not body or body[0] in "-=":
            raise ArgumentError(f"bad flag syntax: {arg}")
        name, has_value, value = body.partition("=")
        if name not in specs:
            if name == "h":
                raise ArgumentError("flag: help requested")
            raise ArgumentError(f"flag provided but not defined: -{name}")
        convert = specs[name]
        if convert is None:
            if not has_value:
                values[name] = True
                continue
            try:
                values[name] = _parse_bool(value)
            except ValueError:
                raise ArgumentError(
                    f'invalid boolean value "{value}" for -{name}: parse error'
                ) from None
            continue
        if not has_value:
            following = next(remaining, None)
            if following is None:
                raise ArgumentError(f"flag needs an argument: -{name}")
            value = following
        try:
            values[name] = convert(value)
        except ValueError:
            raise ArgumentError(
                f'invalid value "{value}" for flag -{name}: parse error'
            ) from None
    return values


def _print_run_usage() -> None:
    print("Usage:")
    print(
        "  ralphx run --task FILE [--checklist FILE] [--workdir DIR] [--resume] "
        "[--session-expiry DURATION] [--auto-replan]"
    )
    print()
    print("Compatibility:")
    print("  ralphx --task FILE ... maps to `ralphx run --task FILE ...`")


_RUN_FLAGS: dict[str, Callable[[str], Any] | None] = {
    "task": str,
    "checklist": str,
    "workdir": str,
    "prompt": str,
    "schema": str,
    "tests-cmd": str,
    "codex-bin": str,
    "workers": _parse_int,
    "max-iterations": _parse_int,
    "max-no-progress": _parse_int,
    "round-timeout": parse_duration,
    "session-expiry": parse_duration,
    "codex-args": str,
    "state-dir": str,
    "resume": None,
    "auto-replan": None,
    "help": None,
}


def parse_run_args(args: Sequence[str]) -> RunConfig | None:
    """Build the run configuration; return None after printing help."""
    flags = _parse_flags(args, _RUN_FLAGS)
    if flags.get("help"):
        _print_run_usage()
        return None

    workdir = flags.get("workdir", env_or("WORKDIR", os.getcwd()))
    state_dir = flags.get("state-dir", "") or os.path.join(workdir, ".ralphx")
    return RunConfig(
        task_file=flags.get("task", ""),
        checklist_file=flags.get("checklist", os.environ.get("CHECKLIST_FILE", "")),
        workdir=workdir,
        prompt_file=flags.get("prompt", os.environ.get("PROMPT_FILE", "")),
        output_schema_file=flags.get("schema", os.environ.get("OUTPUT_SCHEMA_FILE", "")),
        tests_cmd=flags.get("tests-cmd", os.environ.get("TESTS_CMD", "")),
        codex_cmd=flags.get("codex-bin", env_or("CODEX_CMD", "codex")),
        codex_args=split_args(
            flags.get("codex-args", " ".join(split_args(os.environ.get("CODEX_ARGS", ""))))
        ),
        state_dir=state_dir,
        workers=flags.get("workers", env_int("RALPHX_WORKERS", 1)),
        max_iterations=flags.get("max-iterations", env_int("MAX_ITERATIONS", 30)),
        max_no_progress=flags.get("max-no-progress", env_int("MAX_NO_PROGRESS", 3)),
        round_timeout=flags.get("round-timeout", env_seconds("ROUND_TIMEOUT_SECONDS", 1800)),
        resume_session=flags.get("resume", env_bool("RALPHX_RESUME_SESSION", False)),
        session_expiry=flags.get("session-expiry", env_hours("SESSION_EXPIRY_HOURS", 24)),
        auto_replan=flags.get("auto-replan", env_bool("RALPHX_AUTO_REPLAN", True)),
    )