import shutil
import subprocess

import pytest

from ralphx.vcs import Snapshot, capture_status_snapshot


def _install_fake_git(monkeypatch, responses):
    calls = []

    def fake_run(cmd, *args, **kwargs):
        calls.append(list(cmd))
        code, out = responses[cmd[3]]
        return subprocess.CompletedProcess(cmd, code, stdout=out, stderr=b"")

    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/git")
    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls


def test_missing_git_gives_empty_snapshot(monkeypatch, tmp_path):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    assert capture_status_snapshot(tmp_path) == Snapshot(inside_repo=False, status="")


def test_outside_work_tree_gives_empty_snapshot(monkeypatch, tmp_path):
    calls = _install_fake_git(monkeypatch, {"rev-parse": (128, b"")})
    snap = capture_status_snapshot(tmp_path)
    assert snap == Snapshot()
    assert len(calls) == 1
    assert calls[0][:3] == ["git", "-C", str(tmp_path)]


def test_status_lines_are_sorted(monkeypatch, tmp_path):
    _install_fake_git(
        monkeypatch,
        {
            "rev-parse": (0, b"true\n"),
            "status": (0, b" M b.py\n?? a.py\n M a.py\n"),
        },
    )
    snap = capture_status_snapshot(tmp_path)
    assert snap.inside_repo is True
    lines = snap.status.split("\n")
    assert lines == sorted(lines)
    assert snap.status == " M a.py\n?? a.py\nM b.py"


def test_clean_tree_has_empty_status(monkeypatch, tmp_path):
    _install_fake_git(
        monkeypatch, {"rev-parse": (0, b"true\n"), "status": (0, b"\n  \n")}
    )
    assert capture_status_snapshot(tmp_path) == Snapshot(inside_repo=True, status="")


def test_failed_status_gives_empty_snapshot(monkeypatch, tmp_path):
    _install_fake_git(monkeypatch, {"rev-parse": (0, b"true\n"), "status": (1, b"x")})
    assert capture_status_snapshot(tmp_path) == Snapshot()


@pytest.mark.parametrize("output", [b"?? z\n?? a\n", b"?? a\n?? z\n"])
def test_order_of_git_output_does_not_matter(monkeypatch, tmp_path, output):
    _install_fake_git(monkeypatch, {"rev-parse": (0, b""), "status": (0, output)})
    assert capture_status_snapshot(tmp_path).status == "?? a\n?? z"