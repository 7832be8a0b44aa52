"""
Tests for study week calculation.
"""
from datetime import datetime, timedelta, timezone

import pytest

from core.week import week_number, week_options

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestWeekNumber:
    """Week derivation from enrollment timestamps."""

    @pytest.mark.parametrize("days,expected", [
        (0, 1),
        (6.99, 1),
        (7, 2),
        (10, 2),
        (14, 3),
        (77, 12),
        (400, 12),
    ])
    def test_elapsed_days(self, days, expected):
        assert week_number(NOW - timedelta(days=days), now=NOW) == expected

    def test_future_enrollment_is_week_one(self):
        assert week_number(NOW + timedelta(days=3), now=NOW) == 1

    def test_iso_string_with_z_suffix(self):
        assert week_number("2025-02-19T12:00:00Z", now=NOW) == 2

    def test_naive_datetime_treated_as_utc(self):
        enrolled = (NOW - timedelta(days=8)).replace(tzinfo=None)
        assert week_number(enrolled, now=NOW) == 2

    @pytest.mark.parametrize("bad", [None, "", "not-a-date", 12345])
    def test_invalid_input_falls_back_to_week_one(self, bad):
        assert week_number(bad, now=NOW) == 1

    def test_custom_cap(self):
        assert week_number(NOW - timedelta(days=100), now=NOW, max_week=52) == 15

    def test_defaults_to_current_time(self):
        assert week_number(datetime.now(timezone.utc) - timedelta(days=10)) == 2


class TestWeekOptions:
    def test_default_options(self):
        options = week_options()
        assert len(options) == 12
        assert options[0] == {"value": 1, "label": "Week 1"}
        assert options[-1] == {"value": 12, "label": "Week 12"}

    def test_custom_length(self):
        assert [o["value"] for o in week_options(3)] == [1, 2, 3]


class TestWeekProperties:
    def test_monotonic_and_bounded(self):
        enrolled = NOW - timedelta(days=3)
        previous = 0
        for hours in range(0, 24 * 120, 7):
            week = week_number(enrolled, now=enrolled + timedelta(hours=hours))
            assert 1 <= week <= 12
            assert week >= previous
            previous = week
