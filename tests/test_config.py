import os
from datetime import timedelta

import pytest

from ralphx.config import (
    ArgumentError,
    env_bool,
    env_hours,
    env_int,
    env_or,
    env_seconds,
    parse_duration,
    parse_run_args,
    split_args,
)

ENV_KEYS = (
    "WORKDIR",
    "CHECKLIST_FILE",
    "PROMPT_FILE",
    "OUTPUT_SCHEMA_FILE",
    "TESTS_CMD",
    "CODEX_CMD",
    "CODEX_ARGS",
    "RALPHX_WORKERS",
    "MAX_ITERATIONS",
    "MAX_NO_PROGRESS",
    "ROUND_TIMEOUT_SECONDS",
    "RALPHX_RESUME_SESSION",
    "SESSION_EXPIRY_HOURS",
    "RALPHX_AUTO_REPLAN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    cfg = parse_run_args([])
    cwd = os.getcwd()
    assert cfg.workdir == cwd
    assert cfg.state_dir == os.path.join(cwd, ".ralphx")
    assert cfg.task_file == ""
    assert cfg.codex_cmd == "codex"
    assert cfg.codex_args == []
    assert cfg.workers == 1
    assert cfg.max_iterations == 30
    assert cfg.max_no_progress == 3
    assert cfg.round_timeout == timedelta(seconds=1800)
    assert cfg.session_expiry == timedelta(hours=24)
    assert cfg.resume_session is False
    assert cfg.auto_replan is True


def test_flags_override_defaults():
    cfg = parse_run_args(
        [
            "--task", "tasks/demo.md",
            "-checklist=tasks/demo.checklist.md",
            "--workdir", "/work",
            "--workers", "4",
            "--round-timeout", "90s",
            "--session-expiry=2h",
            "--resume",
            "--auto-replan=false",
            "--codex-args", " --model  fast ",
        ]
    )
    assert cfg.task_file == "tasks/demo.md"
    assert cfg.checklist_file == "tasks/demo.checklist.md"
    assert cfg.workdir == "/work"
    assert cfg.state_dir == os.path.join("/work", ".ralphx")
    assert cfg.workers == 4
    assert cfg.round_timeout == timedelta(seconds=90)
    assert cfg.session_expiry == timedelta(hours=2)
    assert cfg.resume_session is True
    assert cfg.auto_replan is False
    assert cfg.codex_args == ["--model", "fast"]


def test_state_dir_flag_wins():
    cfg = parse_run_args(["--state-dir", "/tmp/state", "--workdir", "/work"])
    assert cfg.state_dir == "/tmp/state"


def test_help_returns_none_and_prints_usage(capsys):
    assert parse_run_args(["--help"]) is None
    assert "Usage:" in capsys.readouterr().out


def test_parsing_stops_at_first_positional():
    cfg = parse_run_args(["--task", "a.md", "extra", "--workers", "x"])
    assert cfg.task_file == "a.md"
    assert cfg.workers == 1


@pytest.mark.parametrize(
    "args, pattern",
    [
        (["--bogus"], "flag provided but not defined: -bogus"),
        (["--task"], "flag needs an argument: -task"),
        (["--workers", "x"], 'invalid value "x" for flag -workers'),
        (["--resume=maybe"], 'invalid boolean value "maybe" for -resume'),
        (["--round-timeout", "10"], 'invalid value "10" for flag -round-timeout'),
        (["-h"], "help requested"),
        (["---x"], "bad flag syntax"),
    ],
)
def test_flag_errors(args, pattern):
    with pytest.raises(ArgumentError, match=pattern):
        parse_run_args(args)


def test_environment_defaults(monkeypatch):
    monkeypatch.setenv("RALPHX_WORKERS", "4")
    monkeypatch.setenv("MAX_ITERATIONS", "abc")
    monkeypatch.setenv("ROUND_TIMEOUT_SECONDS", "60")
    monkeypatch.setenv("RALPHX_AUTO_REPLAN", "off")
    monkeypatch.setenv("CODEX_ARGS", "--a --b")
    monkeypatch.setenv("CODEX_CMD", "my-codex")
    cfg = parse_run_args([])
    assert cfg.workers == 4
    assert cfg.max_iterations == 30
    assert cfg.round_timeout == timedelta(seconds=60)
    assert cfg.auto_replan is False
    assert cfg.codex_args == ["--a", "--b"]
    assert cfg.codex_cmd == "my-codex"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0", timedelta(0)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5s", timedelta(seconds=1.5)),
        ("-2m", -timedelta(minutes=2)),
        ("250ms", timedelta(milliseconds=250)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize(
    "text, pattern",
    [
        ("", "invalid duration"),
        ("1", "missing unit"),
        ("x", "invalid duration"),
        ("1y", 'unknown unit "y"'),
        (".s", "invalid duration"),
    ],
)
def test_parse_duration_errors(text, pattern):
    with pytest.raises(ValueError, match=pattern):
        parse_duration(text)


@pytest.mark.parametrize(
    "value, expected",
    [("yes", True), ("ON", True), ("1", True), ("no", False), ("off", False), ("0", False)],
)
def test_env_bool_words(monkeypatch, value, expected):
    monkeypatch.setenv("RALPHX_TEST_FLAG", value)
    assert env_bool("RALPHX_TEST_FLAG", not expected) is expected


def test_env_bool_unknown_uses_fallback(monkeypatch):
    monkeypatch.setenv("RALPHX_TEST_FLAG", "maybe")
    assert env_bool("RALPHX_TEST_FLAG", True) is True
    assert env_bool("RALPHX_TEST_FLAG", False) is False


def test_env_numbers(monkeypatch):
    monkeypatch.setenv("RALPHX_TEST_NUM", " 5")
    assert env_int("RALPHX_TEST_NUM", 7) == 7
    monkeypatch.setenv("RALPHX_TEST_NUM", "-5")
    assert env_int("RALPHX_TEST_NUM", 7) == -5
    assert env_seconds("RALPHX_TEST_MISSING", 1800) == timedelta(seconds=1800)
    assert env_hours("RALPHX_TEST_MISSING", 24) == timedelta(hours=24)


def test_env_or_empty_uses_fallback(monkeypatch):
    monkeypatch.setenv("RALPHX_TEST_STR", "")
    assert env_or("RALPHX_TEST_STR", "codex") == "codex"
    monkeypatch.setenv("RALPHX_TEST_STR", "value")
    assert env_or("RALPHX_TEST_STR", "codex") == "value"


def test_split_args():
    assert split_args("   ") == []
    assert split_args(" a\tb  c ") == ["a", "b", "c"]