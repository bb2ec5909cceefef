"""
Occurrence generation for parsed recurrence rules.

Everything here is a pure function of (rule, anchor, window): a fresh
``dateutil.rrule.rrule`` is built per call and only calendar dates are
handed back, so there is no shared cursor between calls.
"""

from datetime import date, datetime, time
from itertools import takewhile
from typing import Iterator, Optional, Union

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY, rrule
from dateutil.rrule import MO, TU, WE, TH, FR, SA, SU

from .dates import DateValue, is_date, is_datetime
from .rule import Frequency, RecurrenceRule, WEEKDAY_REGEX
from .shared import log_once

DayLike = Union[date, datetime, DateValue, str]

RRULE_FREQ = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
    Frequency.YEARLY: YEARLY,
}

RRULE_WEEKDAY = {
    "MO": MO,
    "TU": TU,
    "WE": WE,
    "TH": TH,
    "FR": FR,
    "SA": SA,
    "SU": SU,
}


def as_day(value: DayLike) -> date:
    """Reduce any accepted date representation to a calendar date."""
    if is_datetime(value):
        return value.date()
    if is_date(value):
        return value
    return DateValue.parse(value).day


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _weekdays(codes: tuple[str, ...]) -> list:
    days = []
    for code in codes:
        match = WEEKDAY_REGEX.match(code)
        if not match:
            continue
        ordinal, abbr = match.groups()
        wkd = RRULE_WEEKDAY[abbr]
        # ordinals only matter for monthly/yearly; rrule ignores them otherwise
        days.append(wkd(int(ordinal)) if ordinal else wkd)
    return days


def rule_anchor(rule: RecurrenceRule, anchor: Optional[DayLike] = None) -> Optional[date]:
    """The date occurrence arithmetic starts from: DTSTART, else ``anchor``."""
    if rule.dtstart is not None:
        return rule.dtstart.day
    if anchor is None:
        return None
    return as_day(anchor)


def build_rrule(rule: RecurrenceRule, anchor_day: date) -> Optional[rrule]:
    """
    Translate a RecurrenceRule into a dateutil rrule starting at
    ``anchor_day``.  Returns None for rules that cannot fire.

    UNTIL is only handed to dateutil when COUNT is absent; with both
    present the UNTIL bound is applied by the callers below.
    """
    if not rule.is_well_formed():
        log_once(f"malformed rule never fires: {rule}")
        return None

    kwargs = {
        "dtstart": _midnight(anchor_day),
        "interval": rule.interval,
        "cache": False,
    }
    if rule.by_day:
        kwargs["byweekday"] = _weekdays(rule.by_day)
    if rule.by_month_day:
        kwargs["bymonthday"] = rule.by_month_day
    if rule.by_month:
        kwargs["bymonth"] = rule.by_month
    if rule.count is not None:
        kwargs["count"] = rule.count
    elif rule.until is not None:
        kwargs["until"] = _midnight(rule.until.day)

    try:
        return rrule(RRULE_FREQ[rule.frequency], **kwargs)
    except (ValueError, TypeError) as e:
        log_once(f"rrule rejected {rule}: {e}")
        return None


def _within_until(rule: RecurrenceRule, day: date) -> bool:
    return rule.until is None or day <= rule.until.day


def iter_occurrences(
    rule: RecurrenceRule, anchor: Optional[DayLike] = None
) -> Iterator[date]:
    """
    Lazily yield every occurrence date from the anchor onward, honoring
    COUNT and UNTIL.  Unbounded rules yield forever.
    """
    anchor_day = rule_anchor(rule, anchor)
    if anchor_day is None:
        return iter(())
    rr = build_rrule(rule, anchor_day)
    if rr is None:
        return iter(())
    days = (dt.date() for dt in rr)
    return takewhile(lambda d: _within_until(rule, d), days)


def occurrences_after(
    rule: RecurrenceRule, after: DayLike, anchor: Optional[DayLike] = None
) -> Iterator[date]:
    """Lazily yield occurrence dates strictly after ``after``."""
    anchor_day = rule_anchor(rule, anchor)
    if anchor_day is None:
        return iter(())
    rr = build_rrule(rule, anchor_day)
    if rr is None:
        return iter(())
    days = (dt.date() for dt in rr.xafter(_midnight(as_day(after)), inc=False))
    return takewhile(lambda d: _within_until(rule, d), days)


def first_after(
    rule: RecurrenceRule, after: DayLike, anchor: Optional[DayLike] = None
) -> Optional[date]:
    """The first occurrence strictly after ``after``, or None when exhausted."""
    return next(occurrences_after(rule, after, anchor), None)


def generate(
    rule: RecurrenceRule,
    window_start: DayLike,
    window_end: DayLike,
    anchor: Optional[DayLike] = None,
) -> list[date]:
    """
    Occurrence dates of ``rule`` inside [window_start, window_end], ascending
    and without duplicates.

    COUNT is counted from the anchor, not from the window start, so a
    window that opens after some occurrences have elapsed still sees the
    budget they consumed.  Rules without an anchor, or that cannot fire,
    give an empty list.  An inverted window is a caller error.
    """
    start = as_day(window_start)
    end = as_day(window_end)
    if end < start:
        raise ValueError(f"window end {end} precedes window start {start}")

    anchor_day = rule_anchor(rule, anchor)
    if anchor_day is None:
        return []
    rr = build_rrule(rule, anchor_day)
    if rr is None:
        return []

    lo = max(start, anchor_day)
    if lo > end:
        return []
    hits = rr.between(_midnight(lo), _midnight(end), inc=True)
    return [dt.date() for dt in hits if _within_until(rule, dt.date())]
