"""
Daily Brief Schemas
===================
Pydantic models for the daily brief API. These are the contract between
the web client and the backend.

Key design decisions:
- Every deterministic field (focus, target, achievement, prs, message,
  nutrition) is computed locally and is identical across repeated calls
  for the same day and the same logged data.
- Language-model text lives in ``styled`` only. The client shows it when
  present, but it never overwrites a deterministic field, so a flaky
  generator can never change what the brief *says*.
- ``version`` lets the client discard cached payloads from an older shape.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.nutrition import NutritionSummary

# Bump whenever the Brief shape changes so stale client caches are dropped.
BRIEF_VERSION = 3

BriefMode = Literal["pre_workout", "post_workout", "rest_day"]
RestReason = Literal["scheduled", "weekly_goal_met", "recovery"]
BriefEvent = Literal["workout_saved", "meal_saved", "settings_changed"]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class DailyBriefRequest(BaseModel):
    """Optional knobs the client may send with a brief request."""

    effective_date: Optional[str] = Field(
        default=None,
        description=(
            "ISO calendar day (YYYY-MM-DD) to generate the brief for. "
            "Debug override; omitted in normal use."
        ),
    )
    timezone: Optional[str] = Field(
        default=None,
        description="IANA zone of the client, e.g. 'America/Chicago'.",
    )
    refresh: bool = Field(
        default=False,
        description="Skip the server-side cache and recompute.",
    )


class BriefEventRequest(BaseModel):
    """Tells the backend something changed that invalidates today's brief."""

    event: BriefEvent


class BriefEventResponse(BaseModel):
    invalidated: bool


# ---------------------------------------------------------------------------
# Brief
# ---------------------------------------------------------------------------

class PreviousBest(BaseModel):
    weight: float
    reps: int


class PersonalRecord(BaseModel):
    """A set heavier than anything previously logged for that exercise."""

    exercise: str
    weight: float
    reps: int
    previous_best: Optional[PreviousBest] = Field(
        default=None,
        description="Heaviest prior working set, or null for a first-ever lift.",
    )


class StyledText(BaseModel):
    """Generator output, validated against the display length budgets."""

    focus: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)


class Brief(BaseModel):
    mode: BriefMode
    focus: str
    target: Optional[str] = None
    achievement: Optional[str] = None
    prs: list[PersonalRecord] = Field(default_factory=list)
    message: Optional[str] = Field(
        default=None,
        description="Fixed-pool motivational line after a completed workout.",
    )
    rest_reason: Optional[RestReason] = None
    nutrition: NutritionSummary
    styled: Optional[StyledText] = None


class BriefDiagnostics(BaseModel):
    """Decision trace for debugging. Omitted in production."""

    today: date
    week_start: date
    weekly_count: int
    days_per_week: int
    consecutive_days: int
    trained_today: bool
    last_label: Optional[str] = None
    suggested: str
    rest_reason: Optional[RestReason] = None
    recent_dates: list[date] = Field(default_factory=list)
    degraded: list[str] = Field(default_factory=list)
    enriched: bool = False


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class DailyBriefResponse(BaseModel):
    """Either ``not_onboarded`` or a fully populated generated brief."""

    status: Literal["not_onboarded", "generated"]
    version: int = BRIEF_VERSION
    brief: Optional[Brief] = None
    generated_at: datetime
    diagnostics: Optional[BriefDiagnostics] = None
