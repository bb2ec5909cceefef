"""
The slice of a task record that recurrence resolution reads.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from .ledger import CompletionLedger, validate_instances


class RecurrenceAnchor(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETION = "completion"

    @classmethod
    def coerce(cls, value) -> "RecurrenceAnchor":
        """Unknown or missing values mean schedule-anchored."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.SCHEDULED


# record key -> (snake_case, camelCase) spellings accepted by from_dict
FIELD_ALIASES = {
    "scheduled": ("scheduled",),
    "due": ("due",),
    "recurrence": ("recurrence",),
    "recurrence_anchor": ("recurrence_anchor", "recurrenceAnchor"),
    "complete_instances": ("complete_instances", "completeInstances"),
    "skipped_instances": ("skipped_instances", "skippedInstances"),
    "title": ("title",),
    "path": ("path",),
}


def _lookup(data: dict, name: str):
    for key in FIELD_ALIASES[name]:
        if key in data:
            return data[key]
    return None


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Task:
    scheduled: Optional[str] = None
    recurrence: Optional[str] = None
    recurrence_anchor: RecurrenceAnchor = RecurrenceAnchor.SCHEDULED
    complete_instances: tuple[str, ...] = ()
    skipped_instances: tuple[str, ...] = ()
    due: Optional[str] = None
    title: str = ""
    path: str = ""
    extra: dict = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        known = {key for keys in FIELD_ALIASES.values() for key in keys}
        recurrence = _lookup(data, "recurrence")
        return cls(
            scheduled=_optional_str(_lookup(data, "scheduled")),
            recurrence=recurrence if isinstance(recurrence, str) else None,
            recurrence_anchor=RecurrenceAnchor.coerce(
                _lookup(data, "recurrence_anchor")
            ),
            complete_instances=tuple(
                validate_instances(_lookup(data, "complete_instances"))
            ),
            skipped_instances=tuple(
                validate_instances(_lookup(data, "skipped_instances"))
            ),
            due=_optional_str(_lookup(data, "due")),
            title=str(_lookup(data, "title") or ""),
            path=str(_lookup(data, "path") or ""),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        if self.title:
            data["title"] = self.title
        if self.path:
            data["path"] = self.path
        if self.scheduled:
            data["scheduled"] = self.scheduled
        if self.due:
            data["due"] = self.due
        if self.recurrence:
            data["recurrence"] = self.recurrence
            data["recurrence_anchor"] = self.recurrence_anchor.value
        data["complete_instances"] = list(self.complete_instances)
        data["skipped_instances"] = list(self.skipped_instances)
        return data

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence)

    @property
    def ledger(self) -> CompletionLedger:
        return CompletionLedger.from_task(self)

    def with_ledger(self, ledger: CompletionLedger) -> "Task":
        complete, skipped = ledger.to_lists()
        return replace(
            self, complete_instances=tuple(complete), skipped_instances=tuple(skipped)
        )
