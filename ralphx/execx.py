"""Run an external command and capture its combined output."""

from __future__ import annotations

import signal
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CommandResult:
    """Combined stdout and stderr of a command and its exit code."""

    output: bytes = b""
    exit_code: int = 0


class CommandError(Exception):
    """Raised when a command cannot start, fails, or times out."""

    def __init__(self, message: str, result: CommandResult) -> None:
        super().__init__(message)
        self.result = result


def _signal_message(number: int) -> str:
    try:
        name = signal.strsignal(number)
    except ValueError:
        name = None
    return f"signal: {(name or str(number)).lower()}"


def run_command(
    name: str,
    args: Sequence[str] = (),
    stdin: bytes | str | None = None,
    workdir: str = "",
    timeout: float | None = None,
) -> CommandResult:
    """Run ``name`` with ``args``; raise CommandError unless it exits with 0."""
    kwargs: dict[str, Any]
    if stdin is None:
        kwargs = {"stdin": subprocess.DEVNULL}
    else:
        kwargs = {"input": stdin.encode() if isinstance(stdin, str) else stdin}
    try:
        completed = subprocess.run(
            [name, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=workdir or None,
            timeout=timeout,
            check=False,
            **kwargs,
        )
    except subprocess.TimeoutExpired as exc:
        output = exc.output if isinstance(exc.output, bytes) else b""
        raise CommandError("signal: killed", CommandResult(output, -1)) from exc
    except OSError as exc:
        raise CommandError(
            f'exec: "{name}": {exc.strerror or exc}', CommandResult(b"", 1)
        ) from exc

    code = completed.returncode
    output = completed.stdout or b""
    if code == 0:
        return CommandResult(output, 0)
    if code < 0:
        raise CommandError(_signal_message(-code), CommandResult(output, -1))
    raise CommandError(f"exit status {code}", CommandResult(output, code))