"""
Calendar date values for recurrence math.

Task fields arrive as 'YYYY-MM-DD' or 'YYYY-MM-DDTHH:mm' (local, no offset)
while rule fields (DTSTART, UNTIL) use the compact 'YYYYMMDD[THHMMSSZ]'
form.  Both are reduced to a naive calendar ``date`` plus an optional
wall-clock ``time`` so that no UTC/local conversion ever shifts the day.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union

from dateutil.parser import isoparse

COMPACT_REGEX = re.compile(r"^(\d{8})(?:T(\d{6}))?")
TIME_OF_DAY_REGEX = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def is_date(obj) -> bool:
    return isinstance(obj, date) and not isinstance(obj, datetime)


def is_datetime(obj) -> bool:
    return isinstance(obj, datetime)


def _fmt_date(d: date) -> str:
    return d.strftime("%Y%m%d")


def _fmt_utc_Z(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M%SZ")


def has_time_component(value: Optional[str]) -> bool:
    """True for 'YYYY-MM-DDTHH:mm' style strings."""
    if not value:
        return False
    text = value.strip()
    return len(text) > 10 and text[10] in ("T", " ")


def get_date_part(value: str) -> str:
    """'2024-01-05T14:00' -> '2024-01-05'."""
    return value.strip()[:10]


def get_time_part(value: Optional[str]) -> Optional[str]:
    """'2024-01-05T14:00:00' -> '14:00'; None when there is no time."""
    if not has_time_component(value):
        return None
    return value.strip()[11:16]


def format_date_for_storage(day: Union[date, datetime]) -> str:
    if is_datetime(day):
        day = day.date()
    return day.strftime("%Y-%m-%d")


def parse_time_of_day(value: str) -> time:
    """
    Parse 'HH:MM' or 'HH:MM:SS' into a ``time``.
    Raises ValueError for anything else.
    """
    match = TIME_OF_DAY_REGEX.match(value.strip())
    if not match:
        raise ValueError(f"invalid time of day: {value!r}")
    hours, minutes, seconds = match.groups()
    return time(int(hours), int(minutes), int(seconds or 0))


@dataclass(frozen=True)
class DateValue:
    """
    A calendar date with an optional wall-clock time.

    ``day`` always carries the calendar date; ``time_of_day`` is None for
    date-only values.  Instances are immutable, so iteration code can
    hand them out freely.
    """

    day: date
    time_of_day: Optional[time] = None

    @classmethod
    def parse(cls, text: Union[str, date, "DateValue"]) -> "DateValue":
        """
        Parse a task field value: 'YYYY-MM-DD' or 'YYYY-MM-DDTHH:mm[:ss]'.
        ``date`` and ``datetime`` objects are accepted as they are.
        """
        if isinstance(text, DateValue):
            return text
        if is_datetime(text):
            return cls(text.date(), text.time().replace(tzinfo=None))
        if is_date(text):
            return cls(text)
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"invalid date value: {text!r}")
        raw = text.strip()
        try:
            parsed = isoparse(raw)
        except (ValueError, OverflowError) as e:
            raise ValueError(f"invalid date value: {text!r}") from e
        # offsets are ignored: the wall clock is what the user wrote
        if has_time_component(raw):
            return cls(parsed.date(), parsed.time().replace(tzinfo=None))
        return cls(parsed.date())

    @classmethod
    def parse_compact(cls, text: str) -> "DateValue":
        """
        Parse a rule value: 'YYYYMMDD' or 'YYYYMMDDTHHMMSS[Z]'.
        A time is only taken when the 'T' separator is followed by six
        digits; anything else is read as date-only.
        """
        match = COMPACT_REGEX.match(text.strip()) if isinstance(text, str) else None
        if not match:
            raise ValueError(f"invalid compact date: {text!r}")
        ymd, hms = match.groups()
        try:
            day = isoparse(ymd).date()
            if hms:
                return cls(day, time(int(hms[:2]), int(hms[2:4]), int(hms[4:])))
        except ValueError as e:
            raise ValueError(f"invalid compact date: {text!r}") from e
        return cls(day)

    @property
    def has_time(self) -> bool:
        return self.time_of_day is not None

    @property
    def date_part(self) -> str:
        return format_date_for_storage(self.day)

    @property
    def time_part(self) -> Optional[str]:
        if self.time_of_day is None:
            return None
        return self.time_of_day.strftime("%H:%M")

    def to_storage(self) -> str:
        if self.time_of_day is None:
            return self.date_part
        return f"{self.date_part}T{self.time_part}"

    def to_compact(self) -> str:
        if self.time_of_day is None:
            return _fmt_date(self.day)
        return _fmt_utc_Z(datetime.combine(self.day, self.time_of_day))

    def to_datetime(self) -> datetime:
        """Naive datetime at the stored time, or midnight for dates."""
        return datetime.combine(self.day, self.time_of_day or time.min)

    def with_day(self, day: date) -> "DateValue":
        return DateValue(day, self.time_of_day)

    def __str__(self) -> str:
        return self.to_storage()
