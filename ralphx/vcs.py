"""Snapshots of a working tree's git status."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Snapshot:
    """Whether the directory is in a git work tree, and its sorted short status."""

    inside_repo: bool = False
    status: str = ""


def _sort_lines(output: str) -> str:
    trimmed = output.strip()
    if not trimmed:
        return ""
    return "\n".join(sorted(trimmed.split("\n")))


def capture_status_snapshot(workdir: str | Path) -> Snapshot:
    """Return the sorted ``git status --short`` of ``workdir``.

    An empty snapshot is returned when git is missing or the directory is
    not inside a work tree.
    """
    if shutil.which("git") is None:
        return Snapshot()

    try:
        inside = subprocess.run(
            ["git", "-C", str(workdir), "rev-parse", "--is-inside-work-tree"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return Snapshot()
    if inside.returncode != 0:
        return Snapshot()

    status = subprocess.run(
        ["git", "-C", str(workdir), "status", "--short"],
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        stdin=subprocess.DEVNULL,
        check=False,
    )
    if status.returncode != 0:
        return Snapshot()
    text = (status.stdout or b"").decode("utf-8", errors="replace")
    return Snapshot(inside_repo=True, status=_sort_lines(text))