"""Tests for natural-language date, time and duration parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from fluxcmd.normalizers.dates import (
    UNPARSEABLE,
    combine_date_time,
    parse_duration,
    parse_natural_date,
    parse_time_of_day,
)

# Wednesday, mid-morning
REFERENCE = datetime(2025, 3, 12, 10, 30)
MIDNIGHT = datetime(2025, 3, 12)


class TestParseNaturalDate:
    """Test parse_natural_date."""

    def test_tomorrow_is_next_midnight(self):
        assert parse_natural_date("tomorrow", REFERENCE) == MIDNIGHT + timedelta(days=1)

    def test_in_three_days(self):
        assert parse_natural_date("in 3 days", REFERENCE) == MIDNIGHT + timedelta(days=3)

    @pytest.mark.parametrize(
        "raw, offset",
        [
            ("today", 0),
            ("Yesterday", -1),
            ("next week", 7),
            ("in 2 weeks", 14),
            ("in three weeks", 21),
            ("5 days from now", 5),
            ("friday", 2),
            ("next friday", 2),
            ("wednesday", 0),
            ("next wednesday", 7),
            ("next monday", 5),
        ],
    )
    def test_relative_dates(self, raw, offset):
        assert parse_natural_date(raw, REFERENCE) == MIDNIGHT + timedelta(days=offset)

    @pytest.mark.parametrize(
        "raw",
        ["2025-12-24", "2025-12-24T15:00:00", "12/24/2025", "December 24, 2025", "24 December 2025", "Dec 24th, 2025"],
    )
    def test_absolute_formats(self, raw):
        assert parse_natural_date(raw, REFERENCE) == datetime(2025, 12, 24)

    def test_yearless_date_uses_reference_year(self):
        assert parse_natural_date("april 2", REFERENCE) == datetime(2025, 4, 2)

    @pytest.mark.parametrize("raw", ["whenever", "", "   ", None, "2025-02-30", "in many days"])
    def test_unparseable_input_returns_sentinel(self, raw):
        result = parse_natural_date(raw, REFERENCE)
        assert result is UNPARSEABLE
        assert not result

    def test_timezone_of_reference_is_kept(self):
        reference = datetime(2025, 3, 12, 23, 0, tzinfo=timezone.utc)
        result = parse_natural_date("tomorrow", reference)
        assert result == datetime(2025, 3, 13, tzinfo=timezone.utc)
        assert result.tzinfo is timezone.utc

    @pytest.mark.parametrize("raw", ["in 5000000 days", "in 99999999999 weeks", "9999999999999999999 days from now"])
    def test_out_of_range_offsets_are_unparseable(self, raw):
        assert parse_natural_date(raw, REFERENCE) is UNPARSEABLE


class TestParseTimeOfDay:
    """Test parse_time_of_day and combine_date_time."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("14:30", (14, 30)),
            ("9:05", (9, 5)),
            ("3pm", (15, 0)),
            ("3 PM", (15, 0)),
            ("12am", (0, 0)),
            ("12:15 pm", (12, 15)),
            ("7:45 a.m.", (7, 45)),
            ("noon", (12, 0)),
            ("midnight", (0, 0)),
        ],
    )
    def test_valid_times(self, raw, expected):
        assert parse_time_of_day(raw) == expected

    @pytest.mark.parametrize("raw", ["25:00", "13pm", "teatime", "", None])
    def test_invalid_times(self, raw):
        assert parse_time_of_day(raw) is None

    def test_combine_sets_hours_and_minutes_only(self):
        combined = combine_date_time(datetime(2025, 3, 13, 0, 0, 42), (15, 30))
        assert combined == datetime(2025, 3, 13, 15, 30, 42)


class TestParseDuration:
    """Test parse_duration."""

    @pytest.mark.parametrize(
        "raw, minutes",
        [
            ("30m", 30),
            ("1h", 60),
            ("1.5 hours", 90),
            ("90 minutes", 90),
            ("1h30m", 90),
            ("1 hour and 15 minutes", 75),
            ("45", 45),
            ("half an hour", 30),
        ],
    )
    def test_valid_durations(self, raw, minutes):
        assert parse_duration(raw) == timedelta(minutes=minutes)

    @pytest.mark.parametrize("raw", ["soon", "", None, "0m", "3 parsecs"])
    def test_invalid_durations(self, raw):
        assert parse_duration(raw) is None

    @pytest.mark.parametrize("raw", ["99999999999999999h", "9" * 400, "99999999999999999999 minutes"])
    def test_out_of_range_durations(self, raw):
        assert parse_duration(raw) is None
