"""
Per-occurrence completion and skip state for a recurring task.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Union

from .dates import DateValue, format_date_for_storage, get_date_part

COMPLETED = "completed"
SKIPPED = "skipped"
OPEN = "open"


def _key(day: Union[date, DateValue, str]) -> str:
    if isinstance(day, DateValue):
        return day.date_part
    if isinstance(day, date):
        return format_date_for_storage(day)
    return DateValue.parse(get_date_part(day)).date_part


def validate_instances(values) -> list[str]:
    """
    Clean a raw instance list from a task record: keep non-empty strings
    that parse as dates (date-times are reduced to their date part) and
    drop everything else.  A lone string is treated as a one-item list.
    """
    if values is None:
        return []
    if isinstance(values, (str, date)):
        values = [values]
    cleaned = []
    for value in values:
        if isinstance(value, date):
            cleaned.append(_key(value))
            continue
        if not isinstance(value, str) or not value.strip():
            continue
        try:
            cleaned.append(_key(value))
        except ValueError:
            continue
    return cleaned


@dataclass(frozen=True)
class CompletionLedger:
    """
    Two sets of 'YYYY-MM-DD' strings.  Every operation returns a new
    ledger; marking or unmarking twice has the same effect as once.

    The sets are not kept disjoint by the mark_*/unmark_* primitives.
    When a date sits in both, ``state_of`` reports it as completed.
    """

    complete: frozenset[str] = field(default_factory=frozenset)
    skipped: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_lists(
        cls,
        complete: Optional[Iterable] = None,
        skipped: Optional[Iterable] = None,
    ) -> "CompletionLedger":
        return cls(
            complete=frozenset(validate_instances(complete)),
            skipped=frozenset(validate_instances(skipped)),
        )

    @classmethod
    def from_task(cls, task) -> "CompletionLedger":
        return cls.from_lists(task.complete_instances, task.skipped_instances)

    def mark_complete(self, day) -> "CompletionLedger":
        return CompletionLedger(self.complete | {_key(day)}, self.skipped)

    def unmark_complete(self, day) -> "CompletionLedger":
        return CompletionLedger(self.complete - {_key(day)}, self.skipped)

    def mark_skipped(self, day) -> "CompletionLedger":
        return CompletionLedger(self.complete, self.skipped | {_key(day)})

    def unmark_skipped(self, day) -> "CompletionLedger":
        return CompletionLedger(self.complete, self.skipped - {_key(day)})

    def is_complete(self, day) -> bool:
        return _key(day) in self.complete

    def is_skipped(self, day) -> bool:
        return _key(day) in self.skipped

    def toggle_complete(self, day) -> "CompletionLedger":
        """Flip completion for one date; completing a date un-skips it."""
        if self.is_complete(day):
            return self.unmark_complete(day)
        return self.mark_complete(day).unmark_skipped(day)

    def toggle_skipped(self, day) -> "CompletionLedger":
        """Flip the skip state for one date; skipping a date un-completes it."""
        if self.is_skipped(day):
            return self.unmark_skipped(day)
        return self.mark_skipped(day).unmark_complete(day)

    def state_of(self, day) -> str:
        key = _key(day)
        if key in self.complete:
            return COMPLETED
        if key in self.skipped:
            return SKIPPED
        return OPEN

    def is_resolved(self, day) -> bool:
        """Completed or skipped: either way not the next thing to do."""
        key = _key(day)
        return key in self.complete or key in self.skipped

    def latest_completion(self) -> Optional[date]:
        if not self.complete:
            return None
        return DateValue.parse(max(self.complete)).day

    def to_lists(self) -> tuple[list[str], list[str]]:
        return sorted(self.complete), sorted(self.skipped)
