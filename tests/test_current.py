import io

import pytest

from ralphx.current import CurrentState, load_current, report


def test_load_parses_keys_and_quotes(tmp_path):
    env = tmp_path / "current.env"
    env.write_text(
        "# written by installer\n"
        "\n"
        'RALPHX_VERSION="v1.2.3"\n'
        "RALPHX_BINARY = /opt/bin/ralphx\n"
        "UNRELATED=value\n"
        "not a pair\n"
    )
    state = load_current(env)
    assert state == CurrentState(
        path=str(env), version="v1.2.3", binary="/opt/bin/ralphx", doctor_binary=""
    )


def test_load_missing_file_raises(tmp_path):
    missing = tmp_path / "nope.env"
    with pytest.raises(OSError) as info:
        load_current(missing)
    assert str(info.value).startswith("could not read persisted execution state")


def test_report_uses_config_dir(monkeypatch, tmp_path):
    (tmp_path / "current.env").write_text(
        "RALPHX_VERSION=v9\nRALPHX_BINARY=/x/ralphx\nRALPHX_DOCTOR_BINARY=/x/doctor\n"
    )
    monkeypatch.setenv("RALPHX_CONFIG_DIR", str(tmp_path))
    out = io.StringIO()
    assert report(out) == 0
    lines = out.getvalue().splitlines()
    assert lines == [
        "ralphx current",
        f"state_file={tmp_path / 'current.env'}",
        "version=v9",
        "binary=/x/ralphx",
        "doctor_binary=/x/doctor",
    ]


def test_report_without_doctor_binary(monkeypatch, tmp_path):
    (tmp_path / "current.env").write_text("RALPHX_VERSION=v9\n")
    monkeypatch.setenv("RALPHX_CONFIG_DIR", str(tmp_path))
    out = io.StringIO()
    assert report(out) == 0
    assert out.getvalue().splitlines()[-1] == "doctor_command=ralphx doctor"


def test_report_missing_state_returns_one(monkeypatch, tmp_path):
    monkeypatch.setenv("RALPHX_CONFIG_DIR", str(tmp_path / "absent"))
    out = io.StringIO()
    assert report(out) == 1
    assert "could not read persisted execution state" in out.getvalue()