"""
Occurrence resolution for recurring tasks.

Two questions are answered here, both as pure functions of a Task
snapshot:

* next_uncompleted_occurrence: the single date a status or completion
  workflow should act on next;
* occurrences_in_window: every occurrence a calendar view needs for a
  visible range, annotated with completion/skip state.

Malformed rules and missing anchors never raise; they resolve to None or
an empty list so one bad task cannot break a whole calendar.
"""

from dataclasses import dataclass, replace
from datetime import date, timedelta
from itertools import islice
from typing import Optional

from .dates import DateValue, format_date_for_storage, has_time_component
from .env import RecurrenceConfig
from .generator import DayLike, as_day, generate, occurrences_after
from .ledger import CompletionLedger
from .rule import Frequency, RecurrenceRule, recurring_time, try_parse_rule
from .shared import log_once
from .task import RecurrenceAnchor, Task


@dataclass(frozen=True)
class OccurrenceDescriptor:
    date: date
    is_completed: bool = False
    is_skipped: bool = False
    is_next_scheduled: bool = False
    start: str = ""  # 'YYYY-MM-DD' or 'YYYY-MM-DDTHH:MM'
    template_time: str = "09:00"

    @property
    def is_pattern_instance(self) -> bool:
        return not self.is_next_scheduled

    @property
    def state(self) -> str:
        if self.is_completed:
            return "completed"
        if self.is_skipped:
            return "skipped"
        return "open"

    @property
    def instance_date(self) -> str:
        return format_date_for_storage(self.date)


def _scheduled_day(task: Task) -> Optional[date]:
    if not task.scheduled:
        return None
    try:
        return DateValue.parse(task.scheduled).day
    except ValueError:
        log_once(f"unparseable scheduled value {task.scheduled!r} for {task.path!r}")
        return None


def _next_from_schedule(
    rule: RecurrenceRule, task: Task, ledger: CompletionLedger
) -> Optional[date]:
    """
    Pattern anchored at DTSTART (or the scheduled date); the first date
    after the scheduled anchor that is neither completed nor skipped.
    Completions never move the anchor.
    """
    anchor = _scheduled_day(task)
    if anchor is None:
        anchor = rule.dtstart.day if rule.dtstart is not None else None
    if anchor is None:
        return None
    for day in occurrences_after(rule, anchor, anchor=anchor):
        if not ledger.is_resolved(day):
            return day
    return None


def _completion_anchor(
    task: Task, ledger: CompletionLedger
) -> tuple[Optional[date], int]:
    """
    The latest completion and the number of occurrences already spent,
    or the scheduled date counted as one spent occurrence.
    """
    anchor = ledger.latest_completion()
    if anchor is not None:
        return anchor, max(len(ledger.complete), 1)
    return _scheduled_day(task), 1


def _reanchor(rule: RecurrenceRule, anchor: date) -> RecurrenceRule:
    # BYDAY/BYMONTHDAY/INTERVAL carry over; COUNT is enforced by the callers
    return replace(rule, dtstart=DateValue(anchor), count=None)


def _completion_budget_end(
    rule: RecurrenceRule, anchor: date, consumed: int
) -> Optional[date]:
    """
    The last date a completion-anchored COUNT still allows, or None when
    the rule has no COUNT.  An exhausted budget ends at the anchor.
    """
    if rule.count is None:
        return None
    days = occurrences_after(_reanchor(rule, anchor), anchor)
    last = anchor
    for day in islice(days, max(rule.count - consumed, 0)):
        last = day
    return last


def _next_from_completion(
    rule: RecurrenceRule, task: Task, ledger: CompletionLedger
) -> Optional[date]:
    """
    Pattern re-anchored at the latest completion (or the scheduled date,
    counted as if it had been completed).  COUNT is spent by the
    completions already recorded rather than by calendar position.
    """
    anchor, consumed = _completion_anchor(task, ledger)
    if anchor is None:
        return None

    index = consumed
    for day in occurrences_after(_reanchor(rule, anchor), anchor):
        index += 1
        if rule.count is not None and index > rule.count:
            return None
        if not ledger.is_resolved(day):
            return day
    return None


def next_uncompleted_occurrence(task: Task) -> Optional[date]:
    """
    The next actionable occurrence of a recurring task, or None when the
    task does not recur, its rule is unusable, no anchor exists, or
    COUNT/UNTIL have been exhausted.
    """
    rule = try_parse_rule(task.recurrence)
    if rule is None:
        return None
    ledger = task.ledger
    if task.recurrence_anchor is RecurrenceAnchor.COMPLETION:
        return _next_from_completion(rule, task, ledger)
    return _next_from_schedule(rule, task, ledger)


def _window_end_for(
    rule: RecurrenceRule, start: date, end: date, config: RecurrenceConfig
) -> date:
    # yearly occurrences are sparse; generation runs further ahead than the
    # view, but occurrences_in_window still clips to the view
    if rule.frequency is Frequency.YEARLY:
        return max(end, start + timedelta(days=config.yearly_lookahead_days))
    return end


def occurrences_in_window(
    task: Task,
    window_start: DayLike,
    window_end: DayLike,
    config: Optional[RecurrenceConfig] = None,
) -> list[OccurrenceDescriptor]:
    """
    Annotated occurrences of ``task`` in [window_start, window_end].

    The task's scheduled date is surfaced as the next scheduled occurrence
    (when it lies in the window) whether or not the pattern produces it;
    pattern instances on the same date are folded into it.  Completion
    takes precedence over skipping in the annotations.

    For completion-anchored rules with COUNT, pattern instances stop where
    next_uncompleted_occurrence would report the budget as spent.
    """
    config = config or RecurrenceConfig()
    start = as_day(window_start)
    end = as_day(window_end)
    if end < start:
        raise ValueError(f"window end {end} precedes window start {start}")

    rule = try_parse_rule(task.recurrence)
    if rule is None:
        return []
    scheduled = _scheduled_day(task)
    if scheduled is None:
        return []

    ledger = task.ledger
    has_time = has_time_component(task.scheduled)
    template_time = recurring_time(task.recurrence, task.scheduled, config.default_time)

    def describe(day: date, next_scheduled: bool) -> OccurrenceDescriptor:
        completed = ledger.is_complete(day)
        if next_scheduled:
            time_part = DateValue.parse(task.scheduled).time_part
        else:
            time_part = template_time
        day_str = format_date_for_storage(day)
        return OccurrenceDescriptor(
            date=day,
            is_completed=completed,
            is_skipped=ledger.is_skipped(day) and not completed,
            is_next_scheduled=next_scheduled,
            start=f"{day_str}T{time_part}" if has_time else day_str,
            template_time=time_part or template_time,
        )

    descriptors = []
    if start <= scheduled <= end:
        descriptors.append(describe(scheduled, True))

    pattern = rule
    budget_end = None
    if task.recurrence_anchor is RecurrenceAnchor.COMPLETION and rule.count is not None:
        # COUNT is spent by completions, not by positions after DTSTART
        budget_end = _completion_budget_end(rule, *_completion_anchor(task, ledger))
        pattern = replace(rule, count=None)

    lookahead_end = _window_end_for(rule, start, end, config)
    for day in generate(pattern, start, lookahead_end, anchor=scheduled):
        if day > end:
            break
        if budget_end is not None and day > budget_end:
            break
        if day == scheduled:
            continue
        descriptors.append(describe(day, False))

    descriptors.sort(key=lambda d: d.date)
    return descriptors


def is_due_on(task: Task, day: DayLike) -> bool:
    """True when ``day`` is the scheduled date or a pattern date of the task."""
    target = as_day(day)
    scheduled = _scheduled_day(task)
    if scheduled == target:
        return True
    rule = try_parse_rule(task.recurrence)
    if rule is None or scheduled is None:
        return False
    return bool(generate(rule, target, target, anchor=scheduled))


def instance_state(task: Task, day: DayLike) -> str:
    """'completed', 'skipped' or 'open' for one date of a recurring task."""
    return task.ledger.state_of(as_day(day))
