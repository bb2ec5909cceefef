"""
Tests for calendar date values.
"""

import pytest
from datetime import date, datetime, time

from tasknotes.dates import (
    DateValue,
    format_date_for_storage,
    get_date_part,
    get_time_part,
    has_time_component,
    parse_time_of_day,
)


@pytest.mark.unit
class TestFieldHelpers:
    """String helpers for task field values."""

    def test_has_time_component(self):
        assert has_time_component("2024-01-05T14:00")
        assert has_time_component("2024-01-05 14:00")
        assert not has_time_component("2024-01-05")
        assert not has_time_component("")
        assert not has_time_component(None)

    def test_date_and_time_parts(self):
        assert get_date_part("2024-01-05T14:00") == "2024-01-05"
        assert get_time_part("2024-01-05T14:00:30") == "14:00"
        assert get_time_part("2024-01-05") is None

    def test_format_for_storage(self):
        assert format_date_for_storage(date(2024, 3, 9)) == "2024-03-09"
        assert format_date_for_storage(datetime(2024, 3, 9, 23, 59)) == "2024-03-09"

    def test_parse_time_of_day(self):
        assert parse_time_of_day("9:05") == time(9, 5)
        assert parse_time_of_day("14:30:15") == time(14, 30, 15)
        with pytest.raises(ValueError):
            parse_time_of_day("2pm")


@pytest.mark.unit
class TestDateValue:
    def test_parse_date_only(self):
        value = DateValue.parse("2024-01-05")
        assert value.day == date(2024, 1, 5)
        assert not value.has_time
        assert value.to_storage() == "2024-01-05"

    def test_parse_with_time(self):
        value = DateValue.parse("2024-01-05T14:00")
        assert value.time_of_day == time(14, 0)
        assert value.to_storage() == "2024-01-05T14:00"

    def test_offset_does_not_shift_day(self):
        """A late-evening value with an offset keeps its calendar day."""
        value = DateValue.parse("2024-01-05T23:30:00-08:00")
        assert value.day == date(2024, 1, 5)
        assert value.time_part == "23:30"

    @pytest.mark.parametrize("bad", ["", "   ", "not a date", "2024-13-01", None, 42])
    def test_parse_rejects_garbage(self, bad):
        with pytest.raises(ValueError):
            DateValue.parse(bad)

    def test_parse_compact(self):
        assert DateValue.parse_compact("20240105") == DateValue(date(2024, 1, 5))
        value = DateValue.parse_compact("20240105T090000Z")
        assert value.day == date(2024, 1, 5)
        assert value.time_of_day == time(9, 0)

    def test_parse_compact_short_time_is_date_only(self):
        value = DateValue.parse_compact("20240105T09")
        assert value == DateValue(date(2024, 1, 5))

    def test_parse_compact_invalid(self):
        with pytest.raises(ValueError):
            DateValue.parse_compact("2024-01-05")
        with pytest.raises(ValueError):
            DateValue.parse_compact("20241305")

    def test_to_compact(self):
        assert DateValue(date(2024, 1, 5)).to_compact() == "20240105"
        assert (
            DateValue(date(2024, 1, 5), time(14, 30)).to_compact()
            == "20240105T143000Z"
        )

    def test_with_day_keeps_time(self):
        value = DateValue.parse("2024-01-05T08:15").with_day(date(2024, 2, 1))
        assert str(value) == "2024-02-01T08:15"
        assert value.to_datetime() == datetime(2024, 2, 1, 8, 15)
