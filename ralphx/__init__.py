"""Building blocks for an outer loop that drives a coding agent through a task and checklist."""

__version__ = "0.1.0"