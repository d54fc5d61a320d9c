import io

import pytest

from ralphx.doctor import main, run_checks


def _fake_tools(directory, names):
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        tool = directory / name
        tool.write_text("#!/bin/sh\nexit 0\n")
        tool.chmod(0o755)
    return directory


@pytest.fixture
def home(monkeypatch, tmp_path):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


def test_required_tools_present(monkeypatch, tmp_path, home):
    bin_dir = _fake_tools(tmp_path / "bin", ["bash", "python3", "codex"])
    monkeypatch.setenv("PATH", str(bin_dir))
    out = io.StringIO()
    assert run_checks(out) == 0
    text = out.getvalue()
    assert text.startswith("ralphx doctor\n")
    assert f"[ok] bash -> {bin_dir / 'bash'}" in text
    assert "[missing] git (optional)" in text
    assert f"[missing] PATH does not contain {home}/.local/bin" in text


def test_missing_required_tool_fails(monkeypatch, tmp_path, home):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    out = io.StringIO()
    assert run_checks(out) == 1
    assert "[missing] codex (required)" in out.getvalue()


def test_path_contains_bin_dir(monkeypatch, tmp_path, home):
    local_bin = _fake_tools(home / ".local" / "bin", ["bash", "python3", "codex"])
    monkeypatch.setenv("PATH", f"/nowhere:{local_bin}")
    out = io.StringIO()
    assert run_checks(out) == 0
    text = out.getvalue()
    assert f"BIN_DIR={local_bin}\n\n" in text
    assert f"[ok] PATH contains {local_bin}" in text


def test_main_prints_to_stdout(monkeypatch, tmp_path, home, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    assert main([]) == 1
    assert "ralphx doctor" in capsys.readouterr().out