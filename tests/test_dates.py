"""
Tests for the Date Resolver
===========================
Covers:
- resolve_day: local-zone "today", not the UTC date
- resolve_day: debug override wins over the clock; invalid override ignored
- week_start: Monday on or before today, including Sunday and Monday itself
- to_local_day: plain dates untouched, timestamps converted to the user's zone
- resolve_timezone: unknown zones fall back

Run: pytest tests/test_dates.py -v
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.services.dates import (
    parse_override,
    resolve_day,
    resolve_timezone,
    to_local_day,
    week_start_for,
)

CHICAGO = ZoneInfo("America/Chicago")
TOKYO = ZoneInfo("Asia/Tokyo")


class TestResolveDay:

    def test_late_evening_local_stays_on_local_day(self):
        """23:00 in Chicago on Mar 4 is already Mar 5 in UTC, so today must be Mar 4."""
        now = datetime(2026, 3, 5, 5, 0, tzinfo=timezone.utc)  # 23:00 CST, Mar 4
        day = resolve_day(None, now, CHICAGO)
        assert day.today == date(2026, 3, 4)

    def test_early_morning_ahead_of_utc(self):
        """01:00 in Tokyo on Mar 5 is still Mar 4 in UTC, so today must be Mar 5."""
        now = datetime(2026, 3, 4, 16, 0, tzinfo=timezone.utc)
        day = resolve_day(None, now, TOKYO)
        assert day.today == date(2026, 3, 5)

    def test_override_wins_over_clock(self):
        now = datetime(2026, 3, 5, 12, 0, tzinfo=timezone.utc)
        day = resolve_day("2026-01-15", now, CHICAGO)
        assert day.today == date(2026, 1, 15)
        assert day.yesterday == date(2026, 1, 14)

    def test_invalid_override_is_ignored(self):
        now = datetime(2026, 3, 5, 12, 0, tzinfo=timezone.utc)
        day = resolve_day("not-a-date", now, timezone.utc)
        assert day.today == date(2026, 3, 5)

    def test_empty_override_is_ignored(self):
        now = datetime(2026, 3, 5, 12, 0, tzinfo=timezone.utc)
        assert resolve_day("  ", now, timezone.utc).today == date(2026, 3, 5)

    def test_naive_now_treated_as_utc(self):
        day = resolve_day(None, datetime(2026, 3, 5, 3, 0), CHICAGO)
        assert day.today == date(2026, 3, 4)

    def test_week_start_is_monday(self):
        # 2026-03-05 is a Thursday
        day = resolve_day("2026-03-05", datetime.now(timezone.utc), timezone.utc)
        assert day.week_start == date(2026, 3, 2)
        assert day.week_start.weekday() == 0


class TestWeekStart:

    def test_sunday_belongs_to_previous_monday(self):
        assert week_start_for(date(2026, 3, 8)) == date(2026, 3, 2)

    def test_monday_is_its_own_week_start(self):
        assert week_start_for(date(2026, 3, 2)) == date(2026, 3, 2)


class TestToLocalDay:

    def test_plain_date_string_unchanged(self):
        assert to_local_day("2026-03-04", TOKYO) == date(2026, 3, 4)

    def test_utc_timestamp_converted_to_local(self):
        """A set saved at 23:30 Chicago time is stored as next-day UTC."""
        assert to_local_day("2026-03-05T05:30:00Z", CHICAGO) == date(2026, 3, 4)

    def test_naive_timestamp_treated_as_utc(self):
        assert to_local_day("2026-03-05T05:30:00", CHICAGO) == date(2026, 3, 4)

    def test_date_object_passthrough(self):
        assert to_local_day(date(2026, 3, 4), CHICAGO) == date(2026, 3, 4)


class TestParseOverride:

    @pytest.mark.parametrize("value", [None, "", "2026-13-40", "yesterday"])
    def test_unusable_values_return_none(self, value):
        assert parse_override(value) is None

    def test_accepts_datetime_prefix(self):
        assert parse_override("2026-03-04T12:00:00") == date(2026, 3, 4)


class TestResolveTimezone:

    def test_first_valid_candidate_wins(self):
        assert resolve_timezone(None, "America/Chicago") == CHICAGO

    def test_unknown_zone_falls_back(self):
        assert resolve_timezone("Mars/Olympus_Mons", fallback="Asia/Tokyo") == TOKYO

    def test_bad_fallback_uses_utc(self):
        assert resolve_timezone(None, fallback="Nowhere/Special") == timezone.utc
