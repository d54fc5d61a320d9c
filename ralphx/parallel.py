"""Jobs, worker records and a local thread-pool scheduler."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    BLOCKED = "blocked"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


class WorkerLifecycle(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    EXITED = "exited"
    LOST = "lost"

    def __str__(self) -> str:
        return self.value


def _text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


@dataclass
class Job:
    """One unit of work handed to a worker."""

    id: str
    goal: str
    scope: list[str] = field(default_factory=list)
    verify: str = ""
    worker_id: str = ""
    status: JobStatus | str = JobStatus.PENDING
    summary: str = ""
    depends_on: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "goal": self.goal}
        if self.scope:
            out["scope"] = list(self.scope)
        if self.verify:
            out["verify"] = self.verify
        if self.worker_id:
            out["worker_id"] = self.worker_id
        out["status"] = _text(self.status)
        if self.summary:
            out["summary"] = self.summary
        if self.depends_on:
            out["depends_on"] = list(self.depends_on)
        return out


@dataclass
class WorkerState:
    """Bookkeeping record for a running worker."""

    id: str
    lifecycle: WorkerLifecycle | str
    job_id: str = ""
    started_at: str = ""
    updated_at: str = ""
    log_path: str = ""
    result_path: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "lifecycle": _text(self.lifecycle)}
        for key in ("job_id", "started_at", "updated_at", "log_path", "result_path"):
            value = getattr(self, key)
            if value:
                out[key] = str(value)
        return out


@dataclass
class WorkerResult:
    """What a worker reports for its job."""

    job_id: str = ""
    worker_id: str = ""
    status: str = ""
    exit_signal: bool = False
    files_modified: int = 0
    tests_passed: bool = False
    blockers: list[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "job_id": self.job_id,
            "worker_id": self.worker_id,
            "status": _text(self.status),
            "exit_signal": self.exit_signal,
            "files_modified": self.files_modified,
            "tests_passed": self.tests_passed,
        }
        if self.blockers:
            out["blockers"] = list(self.blockers)
        if self.summary:
            out["summary"] = self.summary
        return out


@dataclass
class LocalScheduler:
    """Runs a round of jobs on a bounded pool of threads."""

    workers: int = 1
    worker: Callable[[Job], WorkerResult] | None = None

    def run_round(self, jobs: Iterable[Job]) -> list[WorkerResult]:
        """Run every job and return results in job order.

        Every job runs even when some fail; the first failure in job order
        is then raised.
        """
        jobs = list(jobs)
        if not jobs:
            return []
        if self.worker is None:
            raise ValueError("parallel scheduler missing worker")
        count = min(max(self.workers, 1), len(jobs))
        with ThreadPoolExecutor(max_workers=count) as pool:
            futures = [pool.submit(self.worker, job) for job in jobs]
        return [future.result() for future in futures]