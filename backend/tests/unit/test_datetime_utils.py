"""
Unit tests for datetime utilities.

Tests clinic timezone handling and the wall-clock interval primitives.
"""

import pytest
from datetime import date, datetime, time, timezone, timedelta

from utils.datetime_utils import (
    CLINIC_TZ,
    clinic_now,
    combine_clinic_datetime,
    day_of_week_index,
    ensure_clinic_tz,
    format_time,
    intervals_overlap,
    parse_date_string,
    parse_time_string,
    time_to_minutes,
    times_overlap,
)


class TestClinicTimezone:
    """Test clinic timezone utilities."""

    def test_clinic_now_returns_timezone_aware_datetime(self):
        now = clinic_now()

        assert now.tzinfo is not None
        assert now.tzinfo == CLINIC_TZ

    def test_clinic_tz_is_utc_plus_9_by_default(self):
        assert CLINIC_TZ.utcoffset(None).total_seconds() == 9 * 3600

    def test_ensure_clinic_tz_with_naive_datetime(self):
        """Naive datetimes are taken to be clinic wall-clock time."""
        result = ensure_clinic_tz(datetime(2024, 1, 1, 10, 0))

        assert result.tzinfo == CLINIC_TZ
        assert result.hour == 10

    def test_ensure_clinic_tz_converts_other_timezone(self):
        utc_dt = datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc)

        result = ensure_clinic_tz(utc_dt)

        # UTC 01:00 is 10:00 in UTC+9
        assert result.hour == 10

    def test_ensure_clinic_tz_with_none(self):
        assert ensure_clinic_tz(None) is None

    def test_combine_clinic_datetime(self):
        result = combine_clinic_datetime(date(2025, 1, 6), "09:30")

        assert result == datetime(2025, 1, 6, 9, 30, tzinfo=CLINIC_TZ)

    def test_parse_date_string(self):
        assert parse_date_string("2025-01-06") == date(2025, 1, 6)

        with pytest.raises(ValueError):
            parse_date_string("2025/01/06")


class TestTimeToMinutes:
    """Test wall-clock parsing."""

    @pytest.mark.parametrize("value,expected", [
        ("00:00", 0),
        ("09:00", 540),
        ("10:30", 630),
        ("23:59", 1439),
        ("18:00:00", 1080),
    ])
    def test_strings(self, value, expected):
        assert time_to_minutes(value) == expected

    def test_time_objects(self):
        assert time_to_minutes(time(13, 45)) == 825

    @pytest.mark.parametrize("value", ["24:00", "9", "ab:cd", "10:60", ""])
    def test_malformed_raises(self, value):
        with pytest.raises(ValueError):
            time_to_minutes(value)

    def test_parse_and_format(self):
        assert parse_time_string("08:05") == time(8, 5)
        assert format_time(time(8, 5)) == "08:05"
        assert format_time("18:00:00") == "18:00"


class TestIntervalOverlap:
    """Half-open interval overlap."""

    def test_touching_intervals_do_not_overlap(self):
        assert not times_overlap("09:00", "10:00", "10:00", "11:00")
        assert not times_overlap("10:00", "11:00", "09:00", "10:00")

    def test_partial_overlap(self):
        assert times_overlap("09:00", "10:00", "09:30", "10:30")

    def test_containment(self):
        assert times_overlap("09:00", "12:00", "10:00", "10:15")
        assert times_overlap("10:00", "10:15", "09:00", "12:00")

    def test_identical_intervals_overlap(self):
        assert times_overlap("10:00", "10:30", "10:00", "10:30")

    def test_disjoint_intervals(self):
        assert not intervals_overlap(540, 600, 660, 720)

    @pytest.mark.parametrize("a,b", [
        ((540, 600), (570, 630)),
        ((540, 600), (600, 660)),
        ((540, 600), (400, 800)),
        ((540, 600), (300, 540)),
    ])
    def test_symmetric(self, a, b):
        assert intervals_overlap(*a, *b) == intervals_overlap(*b, *a)


class TestDayOfWeekIndex:
    """Business hours use 0=Sunday ... 6=Saturday."""

    def test_sunday_is_zero(self):
        assert day_of_week_index(date(2024, 12, 22)) == 0

    def test_monday_is_one(self):
        assert day_of_week_index(date(2024, 12, 23)) == 1

    def test_saturday_is_six(self):
        assert day_of_week_index(date(2024, 12, 28)) == 6

    def test_week_cycle(self):
        start = date(2024, 12, 22)
        assert [day_of_week_index(start + timedelta(days=i)) for i in range(7)] == list(range(7))
