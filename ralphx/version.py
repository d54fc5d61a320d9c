"""Build identification."""

VERSION = "dev"
COMMIT = "unknown"
DATE = "unknown"


def version_string() -> str:
    """Return the one-line version banner."""
    return f"ralphx {VERSION} (commit={COMMIT}, date={DATE})"