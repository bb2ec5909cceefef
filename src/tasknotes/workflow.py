"""
Completion and skip toggles for recurring task instances.

Each function takes a Task snapshot and returns the snapshot to persist;
writing it back to the note is the caller's job.
"""

from dataclasses import replace
from datetime import date, timedelta
from typing import Optional

from .dates import DateValue, format_date_for_storage
from .generator import DayLike, as_day
from .resolver import next_uncompleted_occurrence
from .rule import try_parse_rule, update_dtstart
from .shared import log_msg
from .task import RecurrenceAnchor, Task


def _shift(value: Optional[str], days: int) -> Optional[str]:
    """Move a 'YYYY-MM-DD[THH:mm]' value by whole days, keeping its time."""
    if not value or not days:
        return value
    try:
        parsed = DateValue.parse(value)
    except ValueError:
        log_msg(f"cannot shift unparseable date {value!r}")
        return value
    return parsed.with_day(parsed.day + timedelta(days=days)).to_storage()


def _moves_schedule(task: Task, target: date) -> bool:
    """
    Completion-anchored tasks re-plan after every change; schedule-anchored
    tasks only when the scheduled occurrence itself is resolved.
    """
    if task.recurrence_anchor is RecurrenceAnchor.COMPLETION:
        return True
    if not task.scheduled:
        return True
    try:
        return DateValue.parse(task.scheduled).day == target
    except ValueError:
        return False


def pin_pattern_start(task: Task) -> Task:
    """
    Give a schedule-anchored rule without DTSTART an explicit DTSTART at
    the current scheduled date.  Until then the pattern is anchored at
    ``scheduled`` itself, and moving it would restart COUNT.
    """
    if task.recurrence_anchor is not RecurrenceAnchor.SCHEDULED or not task.scheduled:
        return task
    rule = try_parse_rule(task.recurrence)
    if rule is None or rule.dtstart is not None:
        return task
    recurrence = update_dtstart(task.recurrence, task.scheduled)
    return replace(task, recurrence=recurrence) if recurrence else task


def advance_schedule(task: Task, maintain_due_offset: bool = True) -> Task:
    """
    Move ``scheduled`` to the next uncompleted occurrence.  The scheduled
    time of day is kept, and ``due`` moves by the same number of days when
    ``maintain_due_offset`` is set.  A task whose recurrence is exhausted
    (or that does not recur) comes back unchanged.

    Schedule-anchored rules are pinned first (see ``pin_pattern_start``)
    so COUNT keeps counting from the original pattern start.
    """
    next_day = next_uncompleted_occurrence(task)
    if next_day is None:
        return task
    task = pin_pattern_start(task)

    if task.scheduled:
        current = DateValue.parse(task.scheduled)
        scheduled = current.with_day(next_day).to_storage()
        delta = (next_day - current.day).days
    else:
        scheduled = format_date_for_storage(next_day)
        delta = 0

    due = _shift(task.due, delta) if maintain_due_offset else task.due
    return replace(task, scheduled=scheduled, due=due)


def toggle_complete(
    task: Task, day: DayLike, maintain_due_offset: bool = True
) -> Task:
    """
    Flip the completion state of one occurrence.

    Adding a completion also advances the schedule; for completion-anchored
    rules DTSTART is first moved to the latest completion so the stored
    rule reflects the new anchor.  Removing a completion only edits the
    ledger.
    """
    target = as_day(day)
    was_complete = task.ledger.is_complete(target)
    updated = task.with_ledger(task.ledger.toggle_complete(target))
    if was_complete or not updated.is_recurring:
        return updated
    if not _moves_schedule(updated, target):
        return updated

    if updated.recurrence_anchor is RecurrenceAnchor.COMPLETION:
        latest = updated.ledger.latest_completion()
        recurrence = update_dtstart(updated.recurrence, format_date_for_storage(latest))
        if recurrence:
            updated = replace(updated, recurrence=recurrence)

    return advance_schedule(updated, maintain_due_offset)


def toggle_skipped(
    task: Task, day: DayLike, maintain_due_offset: bool = True
) -> Task:
    """
    Flip the skip state of one occurrence.  Skipping the scheduled
    occurrence moves the schedule on to the next open one.
    """
    target = as_day(day)
    was_skipped = task.ledger.is_skipped(target)
    updated = task.with_ledger(task.ledger.toggle_skipped(target))
    if was_skipped or not updated.is_recurring:
        return updated
    if not _moves_schedule(updated, target):
        return updated
    return advance_schedule(updated, maintain_due_offset)
