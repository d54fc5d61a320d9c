"""The structured result an agent reports at the end of each round."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar


class RoundStatus(str, Enum):
    """Overall state of the task after a round."""

    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.value


class ActionMode(str, Enum):
    """What the agent did during a round."""

    EXECUTE_NEXT_STEP = "execute_next_step"
    PRODUCE_PLAN = "produce_plan"
    BLOCKED = "blocked"
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.value


class ValidationError(ValueError):
    """Raised when a round result breaks the output contract."""


_E = TypeVar("_E", bound=Enum)


def _member(enum_cls: type[_E], value: Any) -> _E | None:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def _get_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _get_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean")
    return value


def _get_int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r} must be an integer")
    return value


def _get_str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"field {key!r} must be a list of strings")
    return list(value)


def normalize_blockers(items: Iterable[str] | None) -> list[str]:
    """Strip every entry and drop the empty ones."""
    return [item.strip() for item in items or () if item.strip()]


@dataclass
class RoundResult:
    """One round's outcome as reported by the agent."""

    status: RoundStatus | str = ""
    mode: ActionMode | str = ""
    exit_signal: bool = False
    files_modified: int = 0
    tests_passed: bool = False
    blockers: list[str] = field(default_factory=list)
    summary: str = ""
    next_step: str = ""
    checklist_update: list[str] = field(default_factory=list)

    def validate(self) -> None:
        """Raise ValidationError if the result breaks the contract."""
        status = _member(RoundStatus, self.status)
        if status is None:
            raise ValidationError(f"invalid status: {_text(self.status)}")
        if self.files_modified < 0:
            raise ValidationError("files_modified must be >= 0")
        mode = _member(ActionMode, self.mode)
        if mode is None:
            raise ValidationError(f"invalid mode: {_text(self.mode)}")

        if status is RoundStatus.IN_PROGRESS:
            if mode not in (ActionMode.EXECUTE_NEXT_STEP, ActionMode.PRODUCE_PLAN):
                raise ValidationError(
                    "in_progress requires mode execute_next_step or produce_plan"
                )
            if mode is ActionMode.EXECUTE_NEXT_STEP and self.files_modified <= 0:
                raise ValidationError("execute_next_step requires files_modified > 0")
            if (
                mode is ActionMode.PRODUCE_PLAN
                and not self.next_step.strip()
                and not normalize_blockers(self.checklist_update)
            ):
                raise ValidationError("produce_plan requires next_step or checklist_update")
        elif status is RoundStatus.BLOCKED:
            if mode is not ActionMode.BLOCKED:
                raise ValidationError("blocked requires mode blocked")
        elif mode is not ActionMode.COMPLETE:
            raise ValidationError("complete requires mode complete")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RoundResult:
        """Build a result from decoded JSON; raise ValueError on wrong types."""
        if not isinstance(data, Mapping):
            raise ValueError("round result must be a JSON object")
        raw_status = _get_str(data, "status")
        raw_mode = _get_str(data, "mode")
        status = _member(RoundStatus, raw_status)
        mode = _member(ActionMode, raw_mode)
        return cls(
            status=status if status is not None else raw_status,
            mode=mode if mode is not None else raw_mode,
            exit_signal=_get_bool(data, "exit_signal"),
            files_modified=_get_int(data, "files_modified"),
            tests_passed=_get_bool(data, "tests_passed"),
            blockers=_get_str_list(data, "blockers"),
            summary=_get_str(data, "summary"),
            next_step=_get_str(data, "next_step"),
            checklist_update=_get_str_list(data, "checklist_update"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty optional fields."""
        out: dict[str, Any] = {
            "status": _text(self.status),
            "mode": _text(self.mode),
            "exit_signal": self.exit_signal,
            "files_modified": self.files_modified,
            "tests_passed": self.tests_passed,
            "blockers": list(self.blockers),
            "summary": self.summary,
        }
        if self.next_step:
            out["next_step"] = self.next_step
        if self.checklist_update:
            out["checklist_update"] = list(self.checklist_update)
        return out