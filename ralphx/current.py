"""Report which installed build is currently active."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO


@dataclass(frozen=True)
class CurrentState:
    """The persisted description of the active installation."""

    path: str
    version: str = ""
    binary: str = ""
    doctor_binary: str = ""


def _default_current_env_path() -> str:
    config_dir = os.environ.get("RALPHX_CONFIG_DIR", "")
    if not config_dir.strip():
        try:
            home = Path.home()
        except (RuntimeError, KeyError):
            return "~/.config/ralphx/current.env"
        return str(home / ".config" / "ralphx" / "current.env")
    return str(Path(config_dir) / "current.env")


def load_current(path: str | Path = "") -> CurrentState:
    """Parse the ``KEY=value`` state file; raise OSError when it cannot be read."""
    path = str(path)
    if not path.strip():
        path = _default_current_env_path()
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise OSError(f"could not read persisted execution state: {exc}") from exc

    values = {"RALPHX_VERSION": "", "RALPHX_BINARY": "", "RALPHX_DOCTOR_BINARY": ""}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key in values:
            values[key] = value.strip().strip('"')
    return CurrentState(
        path=path,
        version=values["RALPHX_VERSION"],
        binary=values["RALPHX_BINARY"],
        doctor_binary=values["RALPHX_DOCTOR_BINARY"],
    )


def report(stream: TextIO | None = None) -> int:
    """Print the active installation; return 0, or 1 when none is recorded."""
    out = stream if stream is not None else sys.stdout
    try:
        current = load_current()
    except OSError as exc:
        print(exc, file=out)
        return 1
    print("ralphx current", file=out)
    print(f"state_file={current.path}", file=out)
    print(f"version={current.version}", file=out)
    print(f"binary={current.binary}", file=out)
    if current.doctor_binary.strip():
        print(f"doctor_binary={current.doctor_binary}", file=out)
    else:
        print("doctor_command=ralphx doctor", file=out)
    return 0