"""On-disk loop state: paths, records and their readers and writers."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from ralphx.contracts import RoundResult

DIR_NAME = ".ralphx"
LOGS_DIR_NAME = "logs"
STATE_FILE_NAME = "state.json"
LAST_OUTPUT_NAME = "last-output.txt"
LAST_RESULT_NAME = "last-result.json"
SUMMARY_FILE_NAME = "summary.txt"
STATS_FILE_NAME = "stats.json"
SESSION_FILE_NAME = "session.json"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"field {key!r} must be a list of strings")
    return list(value)


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    return value


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


@dataclass(frozen=True)
class Paths:
    """Locations of every file the loop keeps under its state directory."""

    root: Path
    log_dir: Path
    state_file: Path
    last_output_file: Path
    last_json_file: Path
    summary_file: Path
    stats_file: Path
    session_file: Path

    def ensure(self) -> None:
        """Create the state and log directories."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)


@dataclass
class Guidance:
    """Why the task or checklist was rewritten, and where."""

    reason: str
    message: str
    task_file: str = ""
    checklist_file: str = ""
    next_step: str = ""
    checklist_update: list[str] = field(default_factory=list)
    generated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"reason": self.reason, "message": self.message}
        for key in ("task_file", "checklist_file", "next_step"):
            value = getattr(self, key)
            if value:
                out[key] = str(value)
        if self.checklist_update:
            out["checklist_update"] = list(self.checklist_update)
        out["generated_at"] = self.generated_at
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Guidance:
        data = _mapping(data, "guidance")
        return cls(
            reason=_str(data, "reason"),
            message=_str(data, "message"),
            task_file=_str(data, "task_file"),
            checklist_file=_str(data, "checklist_file"),
            next_step=_str(data, "next_step"),
            checklist_update=_str_list(data, "checklist_update"),
            generated_at=_str(data, "generated_at"),
        )


@dataclass
class RunState:
    """The loop's state after the latest round."""

    iteration: int = 0
    updated_at: str = ""
    task_file: str = ""
    checklist_file: str = ""
    result: RoundResult = field(default_factory=RoundResult)
    guidance: Guidance | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"iteration": self.iteration, "updated_at": self.updated_at}
        if self.task_file:
            out["task_file"] = str(self.task_file)
        if self.checklist_file:
            out["checklist_file"] = str(self.checklist_file)
        out["result"] = self.result.to_dict()
        if self.guidance is not None:
            out["guidance"] = self.guidance.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RunState:
        data = _mapping(data, "run state")
        result = data.get("result")
        guidance = data.get("guidance")
        return cls(
            iteration=_int(data, "iteration"),
            updated_at=_str(data, "updated_at"),
            task_file=_str(data, "task_file"),
            checklist_file=_str(data, "checklist_file"),
            result=RoundResult.from_dict(result) if result is not None else RoundResult(),
            guidance=Guidance.from_dict(guidance) if guidance is not None else None,
        )


@dataclass
class Stats:
    """Running totals for the loop."""

    started_at: str = ""
    updated_at: str = ""
    loops_completed: int = 0
    total_elapsed_seconds: int = 0
    last_round_seconds: int = 0
    average_round_seconds: int = 0
    last_status: str = ""
    last_exit_signal: bool = False
    last_files_modified: int = 0

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class SessionMeta:
    """The agent thread to resume and when it was last used."""

    thread_id: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"thread_id": self.thread_id, "updated_at": self.updated_at}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionMeta:
        data = _mapping(data, "session")
        return cls(thread_id=_str(data, "thread_id"), updated_at=_str(data, "updated_at"))


def derive_paths(workdir: str | Path, state_dir: str | Path = "") -> Paths:
    """Lay out the state files under ``state_dir`` or ``<workdir>/.ralphx``."""
    root = Path(state_dir) if str(state_dir) else Path(workdir) / DIR_NAME
    return Paths(
        root=root,
        log_dir=root / LOGS_DIR_NAME,
        state_file=root / STATE_FILE_NAME,
        last_output_file=root / LAST_OUTPUT_NAME,
        last_json_file=root / LAST_RESULT_NAME,
        summary_file=root / SUMMARY_FILE_NAME,
        stats_file=root / STATS_FILE_NAME,
        session_file=root / SESSION_FILE_NAME,
    )


def workers_dir(paths: Paths) -> Path:
    return paths.root / "workers"


def results_dir(paths: Paths) -> Path:
    return paths.root / "results"


def ensure_parallel_dirs(paths: Paths) -> None:
    for directory in (workers_dir(paths), results_dir(paths)):
        directory.mkdir(parents=True, exist_ok=True)


def _format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def _write_text(path: str | Path, contents: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def write_json(path: str | Path, value: Any) -> None:
    """Write ``value`` (a record with ``to_dict`` or plain data) as indented JSON."""
    data = value.to_dict() if hasattr(value, "to_dict") else value
    _write_text(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def write_summary(paths: Paths, summary: str) -> None:
    _write_text(paths.summary_file, summary)


def write_last_output(paths: Paths, output: str) -> None:
    _write_text(paths.last_output_file, output)


def write_last_result(paths: Paths, result: RoundResult) -> None:
    write_json(paths.last_json_file, result)


def write_state(
    paths: Paths,
    iteration: int,
    result: RoundResult,
    task_file: str = "",
    checklist_file: str = "",
    guidance: Guidance | None = None,
    now: datetime | None = None,
) -> None:
    """Record the state after ``iteration`` rounds."""
    run_state = RunState(
        iteration=iteration,
        updated_at=_format_timestamp(now or datetime.now()),
        task_file=str(task_file or ""),
        checklist_file=str(checklist_file or ""),
        result=result,
        guidance=guidance,
    )
    write_json(paths.state_file, run_state)


def load_run_state(paths: Paths) -> RunState:
    """Read the state file; raises OSError or ValueError when unusable."""
    data = json.loads(paths.state_file.read_text(encoding="utf-8"))
    return RunState.from_dict(data)


def write_stats(paths: Paths, stats: Stats, now: datetime | None = None) -> None:
    """Write stats, stamping ``updated_at`` from ``now`` when it is empty."""
    if now is not None and not stats.updated_at:
        stats = dataclasses.replace(stats, updated_at=_format_timestamp(now))
    write_json(paths.stats_file, stats)


def write_session(paths: Paths, session: SessionMeta) -> None:
    write_json(paths.session_file, session)


def load_session(paths: Paths) -> SessionMeta:
    """Read the saved session, or an empty one when none is saved."""
    try:
        text = paths.session_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return SessionMeta()
    return SessionMeta.from_dict(json.loads(text))


def clear_session(paths: Paths) -> None:
    paths.session_file.unlink(missing_ok=True)


def session_fresh(
    session: SessionMeta, expiry: timedelta, now: datetime | None = None
) -> bool:
    """Tell whether the session may still be resumed at ``now``."""
    if not session.thread_id:
        return False
    if expiry <= timedelta(0):
        return True
    try:
        updated = datetime.strptime(session.updated_at, TIMESTAMP_FORMAT)
    except ValueError:
        return False
    now = now or datetime.now()
    if now.tzinfo is not None:
        updated = updated.replace(tzinfo=timezone.utc)
    return now - updated <= expiry