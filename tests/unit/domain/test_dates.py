"""
Tests for day arithmetic helpers.
"""

from datetime import date, datetime, timezone, timedelta

import pytest

from workpulse.domain.dates import (
    count_workdays,
    date_overlap,
    enumerate_dates,
    parse_day,
    parse_timestamp,
    week_start,
)
from workpulse.domain.errors import ValidationError


class TestParseDay:

    def test_iso_day_string(self):
        assert parse_day("2026-03-02") == date(2026, 3, 2)

    def test_empty_values_are_none(self):
        assert parse_day(None) is None
        assert parse_day("") is None

    def test_aware_datetime_normalized_to_utc_day(self):
        # 23:30 at UTC-05:00 is already the next day in UTC
        local = datetime(2026, 3, 2, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert parse_day(local) == date(2026, 3, 3)

    def test_iso_timestamp_string_with_offset(self):
        assert parse_day("2026-03-02T01:00:00+02:00") == date(2026, 3, 1)
        assert parse_day("2026-03-02T10:00:00Z") == date(2026, 3, 2)

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError):
            parse_day("not-a-date")

    def test_naive_timestamp_taken_as_utc(self):
        ts = parse_timestamp("2026-03-02T08:00:00")
        assert ts.tzinfo == timezone.utc


class TestEnumerateDates:

    def test_inclusive_range(self):
        assert enumerate_dates("2026-03-02", "2026-03-04") == [
            "2026-03-02", "2026-03-03", "2026-03-04"
        ]

    def test_single_day(self):
        assert enumerate_dates("2026-03-02", "2026-03-02") == ["2026-03-02"]

    def test_inverted_range_is_empty(self):
        assert enumerate_dates("2026-03-05", "2026-03-02") == []


class TestCountWorkdays:

    def test_two_business_weeks(self):
        # Monday to Friday of the following week
        assert count_workdays("2026-03-02", "2026-03-13") == 10

    def test_weekend_days_count_zero(self):
        assert count_workdays("2026-03-07", "2026-03-07") == 0
        assert count_workdays("2026-03-08", "2026-03-08") == 0
        assert count_workdays("2026-03-07", "2026-03-08") == 0

    def test_inverted_range(self):
        assert count_workdays("2026-03-13", "2026-03-02") == 0

    def test_range_starting_midweek(self):
        # Thursday to Tuesday: Thu, Fri, Mon, Tue
        assert count_workdays("2026-03-05", "2026-03-10") == 4

    def test_matches_day_by_day_count(self):
        start = date(2026, 1, 1)
        for length in range(0, 40):
            end = start + timedelta(days=length)
            expected = sum(
                1 for i in range(length + 1)
                if (start + timedelta(days=i)).weekday() < 5
            )
            assert count_workdays(start, end) == expected


class TestDateOverlap:

    def test_partial_overlap(self):
        assert date_overlap(
            date(2026, 3, 1), date(2026, 3, 10), date(2026, 3, 5), date(2026, 3, 20)
        ) == (date(2026, 3, 5), date(2026, 3, 10))

    def test_touching_intervals_overlap_on_one_day(self):
        assert date_overlap(
            date(2026, 3, 1), date(2026, 3, 5), date(2026, 3, 5), date(2026, 3, 9)
        ) == (date(2026, 3, 5), date(2026, 3, 5))

    def test_disjoint(self):
        assert date_overlap(
            date(2026, 3, 1), date(2026, 3, 4), date(2026, 3, 5), date(2026, 3, 9)
        ) is None


class TestWeekStart:

    def test_monday_is_its_own_week_start(self):
        assert week_start(date(2026, 3, 2)) == date(2026, 3, 2)

    def test_sunday_belongs_to_previous_monday(self):
        assert week_start(date(2026, 3, 8)) == date(2026, 3, 2)

    def test_midweek(self):
        assert week_start(date(2026, 3, 12)) == date(2026, 3, 9)
