"""Loading task files, checklists and state texts, and editing checklists."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

_OPEN_ITEM = re.compile(r"^[\t ]*[-*][\t ]+\[ \]", re.MULTILINE)
_OPEN_PREFIXES = ("- [ ] ", "* [ ] ")


class TaskError(Exception):
    """Raised when a task or checklist cannot be loaded or edited."""


@dataclass(frozen=True)
class Document:
    path: str
    content: str


@dataclass(frozen=True)
class Checklist:
    path: str = ""
    content: str = ""
    auto_discovered: bool = False
    open_items: int = 0


@dataclass(frozen=True)
class StateTexts:
    summary_path: str = ""
    summary: str = ""
    state_path: str = ""
    state: str = ""


@dataclass(frozen=True)
class Bundle:
    """A task together with its checklist and the loop's previous state."""

    task: Document
    checklist: Checklist = field(default_factory=Checklist)
    state: StateTexts = field(default_factory=StateTexts)


@dataclass(frozen=True)
class ChecklistItem:
    """An unchecked checklist line."""

    index: int
    line_number: int
    text: str
    raw_line: str


def _ext(path: str) -> str:
    name = os.path.basename(path)
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


def _read_existing_file(path: str | Path) -> tuple[str, str]:
    full = os.path.abspath(path)
    try:
        return Path(full).read_text(encoding="utf-8", errors="replace"), full
    except FileNotFoundError:
        raise TaskError(f"file not found: {path}") from None
    except OSError as exc:
        raise TaskError(str(exc)) from exc


def load_bundle(
    task_path: str | Path,
    checklist_path: str | Path = "",
    summary_path: str | Path = "",
    state_path: str | Path = "",
) -> Bundle:
    """Load the task, its checklist and the state texts."""
    document = read_task(task_path)
    checklist = load_checklist(document.path, checklist_path)
    state = load_state_texts(summary_path, state_path)
    return Bundle(task=document, checklist=checklist, state=state)


def read_task(path: str | Path) -> Document:
    if not str(path).strip():
        raise TaskError("task file path is required")
    try:
        content, resolved = _read_existing_file(path)
    except TaskError as exc:
        raise TaskError(f"read task: {exc}") from exc
    return Document(path=resolved, content=content)


def load_checklist(task_path: str | Path, explicit_path: str | Path = "") -> Checklist:
    """Load the explicit checklist, or the one found next to the task."""
    resolved, auto = resolve_checklist_path(task_path, explicit_path)
    if not resolved:
        return Checklist()
    try:
        content, full = _read_existing_file(resolved)
    except TaskError as exc:
        raise TaskError(f"read checklist: {exc}") from exc
    return Checklist(
        path=full,
        content=content,
        auto_discovered=auto,
        open_items=count_open_checklist_items(content),
    )


def resolve_checklist_path(
    task_path: str | Path, explicit_path: str | Path = ""
) -> tuple[str, bool]:
    """Return the checklist path and whether it was found automatically.

    An empty path means there is no checklist.
    """
    if str(explicit_path).strip():
        full = os.path.abspath(explicit_path)
        try:
            os.stat(full)
        except FileNotFoundError:
            raise TaskError(f"checklist file not found: {explicit_path}") from None
        except OSError as exc:
            raise TaskError(f"checklist file not found: {exc}") from exc
        return full, False

    task_abs = os.path.abspath(task_path)
    if _ext(task_abs) != ".md":
        return "", False
    auto = task_abs[: -len(".md")] + ".checklist.md"
    try:
        os.stat(auto)
    except FileNotFoundError:
        return "", False
    except OSError as exc:
        raise TaskError(f"stat checklist file: {exc}") from exc
    return auto, True


def count_open_checklist_items(content: str) -> int:
    return len(_OPEN_ITEM.findall(content))


def load_state_texts(summary_path: str | Path = "", state_path: str | Path = "") -> StateTexts:
    try:
        summary, resolved_summary = read_optional_text_file(summary_path)
    except OSError as exc:
        raise TaskError(f"read summary: {exc}") from exc
    try:
        state, resolved_state = read_optional_text_file(state_path)
    except OSError as exc:
        raise TaskError(f"read state: {exc}") from exc
    return StateTexts(
        summary_path=resolved_summary,
        summary=summary,
        state_path=resolved_state,
        state=state,
    )


def read_optional_text_file(path: str | Path) -> tuple[str, str]:
    """Return the content and absolute path; a missing file reads as empty."""
    if not str(path).strip():
        return "", ""
    full = os.path.abspath(path)
    try:
        return Path(full).read_text(encoding="utf-8", errors="replace"), full
    except FileNotFoundError:
        return "", full


def open_checklist_items(content: str) -> list[ChecklistItem]:
    items: list[ChecklistItem] = []
    for number, line in enumerate(content.split("\n")):
        trimmed = line.strip()
        if trimmed.startswith(_OPEN_PREFIXES):
            items.append(
                ChecklistItem(
                    index=len(items),
                    line_number=number,
                    text=trimmed[6:].strip(),
                    raw_line=line,
                )
            )
    return items


def mark_checklist_items_done(path: str | Path, indexes: Iterable[int]) -> None:
    """Tick the open items at ``indexes`` (counted among open items) in a file."""
    indexes = list(indexes)
    if not str(path).strip() or not indexes:
        return
    target = Path(path)
    content = target.read_text(encoding="utf-8", errors="replace")
    target.write_text(mark_checklist_content_done(content, indexes), encoding="utf-8")


def mark_checklist_content_done(content: str, indexes: Iterable[int]) -> str:
    wanted = set(indexes)
    if not wanted:
        return content
    lines = content.split("\n")
    open_index = 0
    for number, line in enumerate(lines):
        trimmed = line.strip()
        prefix = next((p for p in _OPEN_PREFIXES if trimmed.startswith(p)), None)
        if prefix is None:
            continue
        if open_index in wanted:
            indent = line[: line.index(prefix)]
            done = prefix.replace("[ ]", "[x]", 1)
            lines[number] = indent + done + trimmed[len(prefix):].strip()
        open_index += 1
    for index in sorted(wanted):
        if index >= open_index:
            raise TaskError(f"checklist index {index} out of range")
    return "\n".join(lines)