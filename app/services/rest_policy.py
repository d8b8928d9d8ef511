"""
Rest Day Policy
===============
Combines rotation state, weekly-goal attainment and the current training
streak into a single rest / train verdict.

Priority order:
    1. Rotation says "Rest"                          → rest (scheduled)
    2. Not trained today AND weekly goal already met → rest (weekly_goal_met)
    3. Not trained today AND ≥ 3 straight days       → rest (recovery)
    4. Otherwise                                     → training day

Having trained today is never itself a reason for rest. The assembler
shows a completed-workout brief in that case regardless of this verdict.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional, Sequence

from app.models.brief import RestReason
from app.models.workout import WorkoutSession
from app.services.dates import DayContext

RECOVERY_STREAK_DAYS = 3
MAX_STREAK_LOOKBACK = 7


@dataclass(frozen=True)
class RestDecision:
    is_rest: bool
    reason: Optional[RestReason]
    weekly_count: int
    consecutive_days: int
    days_per_week: int


def weekly_session_count(sessions: Sequence[WorkoutSession], day: DayContext) -> int:
    """Sessions dated in [week_start, today]. Two sessions on one day count twice."""
    return sum(1 for s in sessions if day.in_current_week(s.date))


def consecutive_training_days(sessions: Sequence[WorkoutSession], today: date) -> int:
    """Days in a row with a session, walking back from yesterday.

    Stops at the first gap, or after ``MAX_STREAK_LOOKBACK`` days.
    """
    trained_days = {s.date for s in sessions}
    count = 0
    check = today - timedelta(days=1)
    for _ in range(MAX_STREAK_LOOKBACK):
        if check not in trained_days:
            break
        count += 1
        check -= timedelta(days=1)
    return count


def decide_rest_day(
    suggested_is_rest: bool,
    sessions: Sequence[WorkoutSession],
    day: DayContext,
    days_per_week: int,
    trained_today: bool,
) -> RestDecision:
    weekly = weekly_session_count(sessions, day)
    streak = consecutive_training_days(sessions, day.today)

    reason: Optional[RestReason] = None
    if suggested_is_rest:
        reason = "scheduled"
    elif not trained_today:
        if weekly >= days_per_week:
            reason = "weekly_goal_met"
        elif streak >= RECOVERY_STREAK_DAYS:
            reason = "recovery"

    return RestDecision(
        is_rest=reason is not None,
        reason=reason,
        weekly_count=weekly,
        consecutive_days=streak,
        days_per_week=days_per_week,
    )
