"""
Tests for the Rest Day Policy
=============================
Covers:
- Priority: scheduled rest > weekly goal met > recovery streak
- Having trained today suppresses the goal and streak checks
- Weekly count: Monday..today inclusive, duplicates on one day count twice
- Streak walks back from yesterday and stops at the first gap

Run: pytest tests/test_rest_policy.py -v
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta

import pytest

from app.models.workout import WorkoutSession
from app.services.dates import DayContext, week_start_for
from app.services.rest_policy import (
    MAX_STREAK_LOOKBACK,
    consecutive_training_days,
    decide_rest_day,
    weekly_session_count,
)

# Thursday
TODAY = date(2026, 3, 5)
DAY = DayContext(today=TODAY, yesterday=TODAY - timedelta(days=1), week_start=week_start_for(TODAY))


def _on(*days_ago: int) -> list[WorkoutSession]:
    return [
        WorkoutSession(id=str(uuid.uuid4()), date=TODAY - timedelta(days=n))
        for n in days_ago
    ]


class TestWeeklyCount:

    def test_counts_monday_through_today(self):
        # Mon, Wed, and last Sunday (previous week)
        assert weekly_session_count(_on(3, 1, 4), DAY) == 2

    def test_two_sessions_same_day_count_twice(self):
        assert weekly_session_count(_on(1, 1), DAY) == 2

    def test_includes_today(self):
        assert weekly_session_count(_on(0), DAY) == 1


class TestStreak:

    def test_walks_back_from_yesterday(self):
        assert consecutive_training_days(_on(1, 2, 3), TODAY) == 3

    def test_today_does_not_count(self):
        assert consecutive_training_days(_on(0), TODAY) == 0

    def test_stops_at_gap(self):
        assert consecutive_training_days(_on(1, 2, 4, 5), TODAY) == 2

    def test_capped_at_lookback(self):
        sessions = _on(*range(1, 15))
        assert consecutive_training_days(sessions, TODAY) == MAX_STREAK_LOOKBACK


class TestDecideRestDay:

    def test_scheduled_rest_wins(self):
        decision = decide_rest_day(True, _on(1, 2, 3), DAY, days_per_week=3, trained_today=False)
        assert decision.is_rest is True
        assert decision.reason == "scheduled"

    def test_weekly_goal_met(self):
        # Mon, Tue, Wed this week with a goal of 3
        decision = decide_rest_day(False, _on(3, 2, 1), DAY, days_per_week=3, trained_today=False)
        assert decision.is_rest is True
        assert decision.reason == "weekly_goal_met"
        assert decision.weekly_count == 3

    def test_recovery_after_three_straight_days(self):
        decision = decide_rest_day(False, _on(3, 2, 1), DAY, days_per_week=5, trained_today=False)
        assert decision.consecutive_days == 3
        assert decision.reason == "recovery"

    def test_two_day_streak_is_training_day(self):
        decision = decide_rest_day(False, _on(2, 1), DAY, days_per_week=5, trained_today=False)
        assert decision.is_rest is False
        assert decision.reason is None

    @pytest.mark.parametrize("days_ago", [(3, 2, 1), (1, 2, 3, 0)])
    def test_trained_today_is_never_goal_or_recovery_rest(self, days_ago):
        decision = decide_rest_day(False, _on(*days_ago), DAY, days_per_week=3, trained_today=True)
        assert decision.is_rest is False

    def test_trained_today_still_reports_scheduled(self):
        decision = decide_rest_day(True, _on(0), DAY, days_per_week=4, trained_today=True)
        assert decision.reason == "scheduled"

    def test_no_history_is_training_day(self):
        decision = decide_rest_day(False, [], DAY, days_per_week=4, trained_today=False)
        assert decision.is_rest is False
        assert decision.weekly_count == 0
        assert decision.consecutive_days == 0
