"""
Recurrence rule strings.

A rule is a semicolon-delimited list of KEY=VALUE parts, optionally
preceded by a DTSTART part and/or an 'RRULE:' prefix:

    DTSTART:20240101;FREQ=DAILY;INTERVAL=1;BYDAY=MO,TU
    DTSTART:20240101T090000Z;FREQ=WEEKLY;COUNT=10
    RRULE:FREQ=MONTHLY;BYMONTHDAY=15

Only FREQ, INTERVAL, BYDAY, BYMONTHDAY, BYMONTH, COUNT, UNTIL and DTSTART
carry meaning here; any other key is ignored.

There are two entry points.  try_parse_rule never raises: a rule that
cannot be used comes back as None, which every resolver query treats as
"not recurring".  parse_rule is the strict form for editors and the CLI;
it raises RuleParseError with the reason.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .dates import DateValue, get_date_part, get_time_part, parse_time_of_day
from .shared import log_once

WEEKDAY_CODES = ("MO", "TU", "WE", "TH", "FR", "SA", "SU")
WEEKDAY_REGEX = re.compile(r"^([+-]?[1-5])?(MO|TU|WE|TH|FR|SA|SU)$")
DTSTART_REGEX = re.compile(r"DTSTART(?:;[^:;\n]*)?:([^;\n]+)")


class RuleParseError(ValueError):
    """The text is not a usable recurrence rule."""


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def code(self) -> str:
        return self.name


FREQ_MAP = {f.name: f for f in Frequency}


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: Frequency
    interval: int = 1
    by_day: tuple[str, ...] = ()
    by_month_day: tuple[int, ...] = ()
    by_month: tuple[int, ...] = ()
    count: Optional[int] = None
    until: Optional[DateValue] = None
    dtstart: Optional[DateValue] = None

    def is_well_formed(self) -> bool:
        """
        False when BYMONTHDAY or BYMONTH hold values no calendar has.
        Such rules parse (so the text round-trips) but never fire.
        """
        if any(not 1 <= d <= 31 for d in self.by_month_day):
            return False
        if any(not 1 <= m <= 12 for m in self.by_month):
            return False
        return self.interval >= 1

    @property
    def has_time(self) -> bool:
        return self.dtstart is not None and self.dtstart.has_time

    def to_rrule_string(self) -> str:
        parts = []
        if self.dtstart is not None:
            parts.append(f"DTSTART:{self.dtstart.to_compact()}")
        parts.append(f"FREQ={self.frequency.code}")
        parts.append(f"INTERVAL={self.interval}")
        if self.by_day:
            parts.append(f"BYDAY={','.join(self.by_day)}")
        if self.by_month_day:
            parts.append(f"BYMONTHDAY={','.join(str(d) for d in self.by_month_day)}")
        if self.by_month:
            parts.append(f"BYMONTH={','.join(str(m) for m in self.by_month)}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.until is not None:
            parts.append(f"UNTIL={self.until.to_compact()}")
        return ";".join(parts)

    def __str__(self) -> str:
        return self.to_rrule_string()


def _split_parts(text: str) -> list[str]:
    parts = []
    for line in text.splitlines():
        for part in line.split(";"):
            part = part.strip()
            if part.startswith("RRULE:"):
                part = part[len("RRULE:") :].strip()
            if part:
                parts.append(part)
    return parts


def _parse_rule_date(key: str, value: str) -> DateValue:
    try:
        return DateValue.parse_compact(value)
    except ValueError:
        pass
    try:
        return DateValue.parse(value)
    except ValueError as e:
        raise RuleParseError(f"{key}: invalid date {value!r}") from e


def _parse_int(key: str, value: str, minimum: Optional[int] = None) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise RuleParseError(f"{key}: {value!r} is not an integer") from e
    if minimum is not None and number < minimum:
        raise RuleParseError(f"{key}: {number} is less than the allowed minimum")
    return number


def _parse_int_list(key: str, value: str) -> tuple[int, ...]:
    return tuple(_parse_int(key, x.strip()) for x in value.split(",") if x.strip())


def parse_weekdays(value: str) -> tuple[str, ...]:
    """
    'MO,TU,XX,2WE' -> ('MO', 'TU', '2WE').  Unknown codes are dropped.
    A leading '+' on an ordinal is normalized away.
    """
    days = []
    for raw in value.split(","):
        match = WEEKDAY_REGEX.match(raw.strip())
        if not match:
            continue
        ordinal, code = match.groups()
        if ordinal:
            n = int(ordinal)
            days.append(f"{n}{code}")
        else:
            days.append(code)
    return tuple(days)


def parse_rule(text: str) -> RecurrenceRule:
    """
    Parse a rule string.  Raises RuleParseError when FREQ is missing or
    a recognized key carries an unusable value.  Unknown keys and unknown
    BYDAY codes are ignored.
    """
    if not isinstance(text, str) or not text.strip():
        raise RuleParseError("empty recurrence rule")

    fields = {}
    dtstart = None
    for part in _split_parts(text):
        if part.startswith("DTSTART"):
            if ":" in part:
                _, _, value = part.rpartition(":")
            else:
                _, _, value = part.partition("=")
            dtstart = _parse_rule_date("DTSTART", value.strip())
            continue
        key, sep, value = part.partition("=")
        if not sep:
            continue
        fields[key.strip()] = value.strip()

    freq = fields.get("FREQ")
    if freq is None:
        raise RuleParseError(f"missing FREQ in {text!r}")
    if freq not in FREQ_MAP:
        raise RuleParseError(f"unsupported frequency {freq!r}")

    interval = 1
    if "INTERVAL" in fields:
        interval = _parse_int("INTERVAL", fields["INTERVAL"], minimum=1)

    count = None
    if "COUNT" in fields:
        count = _parse_int("COUNT", fields["COUNT"], minimum=1)

    until = None
    if "UNTIL" in fields:
        until = _parse_rule_date("UNTIL", fields["UNTIL"])
        # UNTIL is a calendar bound
        until = DateValue(until.day)

    return RecurrenceRule(
        frequency=FREQ_MAP[freq],
        interval=interval,
        by_day=parse_weekdays(fields.get("BYDAY", "")),
        by_month_day=_parse_int_list("BYMONTHDAY", fields.get("BYMONTHDAY", "")),
        by_month=_parse_int_list("BYMONTH", fields.get("BYMONTH", "")),
        count=count,
        until=until,
        dtstart=dtstart,
    )


def try_parse_rule(text: Optional[str]) -> Optional[RecurrenceRule]:
    """
    Parse a rule without raising; None means "not recurring".  The
    reason for a rejected rule is logged once per distinct text.
    """
    if not text:
        return None
    try:
        return parse_rule(text)
    except RuleParseError as e:
        log_once(f"ignoring recurrence {text!r}: {e}")
        return None


def recurring_time(
    recurrence: Optional[str], scheduled: Optional[str], default: str = "09:00"
) -> str:
    """
    The 'HH:MM' template time for pattern instances: the DTSTART time when
    the rule has one, else the scheduled time, else ``default``.
    """
    if recurrence and isinstance(recurrence, str):
        match = DTSTART_REGEX.search(recurrence)
        if match:
            try:
                dtstart = DateValue.parse_compact(match.group(1))
            except ValueError:
                dtstart = None
            if dtstart is not None and dtstart.has_time:
                return dtstart.time_part
    time_part = get_time_part(scheduled)
    if time_part:
        return time_part
    return default


def update_dtstart(
    recurrence: Optional[str], date_str: str, time_str: Optional[str] = None
) -> Optional[str]:
    """
    Point DTSTART at ``date_str`` ('YYYY-MM-DD[THH:mm]'), inserting it when
    missing.  The rest of the rule text is left exactly as it was.

    The time written is, in order: ``time_str``, the time in ``date_str``,
    the time of the existing DTSTART.  With none of these, DTSTART is
    date-only.  Returns None when there is no rule to update.
    """
    if not recurrence or not isinstance(recurrence, str):
        return None

    day = DateValue.parse(get_date_part(date_str)).day
    hhmm = time_str or get_time_part(date_str)
    existing = DTSTART_REGEX.search(recurrence)

    if hhmm:
        new_value = DateValue(day, parse_time_of_day(hhmm)).to_compact()
    elif existing and "T" in existing.group(1):
        new_value = f"{day.strftime('%Y%m%d')}T{existing.group(1).split('T', 1)[1]}"
    else:
        new_value = day.strftime("%Y%m%d")

    if existing:
        start, end = existing.span()
        return f"{recurrence[:start]}DTSTART:{new_value}{recurrence[end:]}"
    return f"DTSTART:{new_value};{recurrence}"
