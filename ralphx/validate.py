"""Run the repository's validation command after a round."""

from __future__ import annotations

from pathlib import Path

from ralphx.execx import CommandError, run_command


class ValidationFailed(Exception):
    """Raised when the validation command exits unsuccessfully."""

    def __init__(self, message: str, output: bytes = b"") -> None:
        super().__init__(message)
        self.output = output


def run_validation(
    workdir: str | Path,
    command: str,
    log_path: str | Path = "",
    timeout: float | None = None,
) -> None:
    """Run ``command`` through a login bash in ``workdir``.

    The combined output is written to ``log_path`` when one is given.
    """
    if not command:
        return
    output = b""
    failure: CommandError | None = None
    try:
        output = run_command("bash", ["-lc", command], None, str(workdir), timeout).output
    except CommandError as exc:
        failure = exc
        output = exc.result.output
    if str(log_path):
        log = Path(log_path)
        try:
            log.parent.mkdir(parents=True, exist_ok=True)
            log.write_bytes(output)
        except OSError:
            pass
    if failure is not None:
        raise ValidationFailed(f"validation command failed: {failure}", output) from failure