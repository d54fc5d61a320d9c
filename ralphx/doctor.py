"""Check that the tools the loop relies on are installed."""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO


@dataclass(frozen=True)
class Check:
    """One executable to look up on PATH."""

    name: str
    required: bool


CHECKS = (
    Check("bash", True),
    Check("python3", True),
    Check("git", False),
    Check("gh", False),
    Check("codex", True),
    Check("jq", False),
)


def _default_bin_dir() -> str:
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return "~/.local/bin"
    return f"{home}/.local/bin"


def _print_check(out: TextIO, check: Check) -> bool:
    path = shutil.which(check.name)
    if path is None:
        kind = "required" if check.required else "optional"
        print(f"[missing] {check.name} ({kind})", file=out)
        return False
    print(f"[ok] {check.name} -> {path}", file=out)
    return True


def run_checks(stream: TextIO | None = None) -> int:
    """Print a report; return 1 if a required tool is missing, else 0."""
    out = stream if stream is not None else sys.stdout
    bin_dir = _default_bin_dir()
    print("ralphx doctor", file=out)
    print(f"BIN_DIR={bin_dir}\n", file=out)

    exit_code = 0
    for check in CHECKS:
        if not _print_check(out, check) and check.required:
            exit_code = 1

    print(file=out)
    path_env = os.environ.get("PATH", "")
    if f":{bin_dir}:" in f":{path_env}:":
        print(f"[ok] PATH contains {bin_dir}", file=out)
    else:
        print(f"[missing] PATH does not contain {bin_dir}", file=out)
        print(f'Add it with: export PATH="{bin_dir}:$PATH"', file=out)
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the standalone doctor command."""
    return run_checks(sys.stdout)