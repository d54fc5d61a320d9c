import threading
import time

import pytest

from ralphx.parallel import (
    Job,
    JobStatus,
    LocalScheduler,
    WorkerLifecycle,
    WorkerResult,
    WorkerState,
)


def _echo_worker(job):
    return WorkerResult(job_id=job.id, worker_id="w", status="complete", summary=job.goal)


def test_empty_round_returns_no_results():
    assert LocalScheduler(workers=2, worker=_echo_worker).run_round([]) == []


def test_missing_worker_raises():
    with pytest.raises(ValueError, match="missing worker"):
        LocalScheduler(workers=2).run_round([Job(id="task-0001", goal="g")])


def test_results_follow_job_order():
    jobs = [Job(id=f"task-{i:04d}", goal=f"goal {i}") for i in range(1, 6)]
    results = LocalScheduler(workers=3, worker=_echo_worker).run_round(jobs)
    assert [r.job_id for r in results] == [j.id for j in jobs]
    assert [r.summary for r in results] == [j.goal for j in jobs]


def test_concurrency_is_bounded_by_workers():
    lock = threading.Lock()
    active = 0
    peak = 0

    def worker(job):
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.05)
        with lock:
            active -= 1
        return WorkerResult(job_id=job.id)

    jobs = [Job(id=str(i), goal="g") for i in range(6)]
    results = LocalScheduler(workers=2, worker=worker).run_round(jobs)
    assert len(results) == len(jobs)
    assert 1 <= peak <= 2


def test_non_positive_workers_still_run_jobs():
    jobs = [Job(id="a", goal="x"), Job(id="b", goal="y")]
    results = LocalScheduler(workers=0, worker=_echo_worker).run_round(jobs)
    assert [r.job_id for r in results] == ["a", "b"]


def test_failure_is_raised_after_all_jobs_ran():
    seen = []
    lock = threading.Lock()

    def worker(job):
        with lock:
            seen.append(job.id)
        if job.id == "b":
            raise RuntimeError("boom")
        return WorkerResult(job_id=job.id)

    jobs = [Job(id=name, goal="g") for name in ("a", "b", "c")]
    with pytest.raises(RuntimeError, match="boom"):
        LocalScheduler(workers=1, worker=worker).run_round(jobs)
    assert sorted(seen) == ["a", "b", "c"]


def test_job_to_dict_omits_empty_fields():
    data = Job(id="task-0001", goal="ship").to_dict()
    assert data == {"id": "task-0001", "goal": "ship", "status": "pending"}


def test_job_to_dict_includes_set_fields():
    job = Job(id="j", goal="g", scope=["a"], status=JobStatus.RUNNING, depends_on=["x"])
    data = job.to_dict()
    assert data["scope"] == ["a"]
    assert data["status"] == "running"
    assert data["depends_on"] == ["x"]


def test_worker_state_to_dict():
    state = WorkerState(id="worker-01", lifecycle=WorkerLifecycle.RUNNING, job_id="task-0001")
    assert state.to_dict() == {"id": "worker-01", "lifecycle": "running", "job_id": "task-0001"}


def test_worker_result_to_dict_omits_empty_blockers():
    data = WorkerResult(job_id="j", worker_id="w", status="blocked").to_dict()
    assert "blockers" not in data
    assert data["exit_signal"] is False
    with_blockers = WorkerResult(job_id="j", blockers=["x"]).to_dict()
    assert with_blockers["blockers"] == ["x"]