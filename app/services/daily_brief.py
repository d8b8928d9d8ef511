"""
Daily Brief Service
===================
Assembles the one-per-day training brief for a user.

Decision logic:
    1. Resolve the calendar day (debug override or "now" in the user's zone).
    2. Load profile, preferences, recent sessions and nutrition.
    3. Not onboarded (height / weight / goal missing) → ``not_onboarded``.
    4. Build the deterministic brief:
         trained today           → post_workout  (achievement, PRs, message)
         rest policy says rest   → rest_day      (reason-specific target)
         otherwise               → pre_workout   (rotation focus, target set)
    5. Optionally ask the text generator for nicer wording of focus /
       target. The result goes to ``brief.styled`` only; the deterministic
       fields were already final before the call was made.

Steps 1–4 are a pure function of (stored data, day). Calling twice for the
same day with the same logged data gives identical deterministic fields,
whatever the generator does. No exception escapes ``generate``: an engine
failure degrades to a minimal training-day brief.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from app.config import Settings, get_settings
from app.models.brief import (
    Brief,
    BriefDiagnostics,
    DailyBriefResponse,
    PersonalRecord,
    StyledText,
)
from app.models.nutrition import NutritionSummary
from app.models.workout import WorkoutSession
from app.services.activity import ActivityService, ActivitySnapshot, get_activity_service
from app.services.brief_enrichment import (
    BriefTextGenerator,
    build_prompt,
    enrich,
    get_brief_generator,
)
from app.services.dates import DayContext, resolve_day, resolve_timezone
from app.services.pr_detection import detect_prs
from app.services.rest_policy import RestDecision, decide_rest_day
from app.services.rotation import DEFAULT_SUGGESTION, RotationResult, last_session_before, resolve_rotation
from app.services.targets import GENERIC_TARGET, format_set, select_target
from app.services.taxonomy import GROUP_LABELS, classify_session, clean_label

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

REQUIRED_PROFILE_FIELDS = ("height_inches", "weight_lbs", "goal")

REST_FOCUS = "Rest Day"

# Fixed pools, picked by calendar day so a given day always shows the same line.
POST_WORKOUT_MESSAGES: tuple[str, ...] = (
    "Work done. Refuel and recover.",
    "Another session in the bank.",
    "Consistency wins. See you next time.",
    "Solid work today. Hit your protein.",
)

PR_MESSAGES: tuple[str, ...] = (
    "New PR on {exercise}. Strong day.",
    "{exercise} PR! That's real progress.",
    "You just beat your best {exercise}.",
)

MULTI_PR_MESSAGES: tuple[str, ...] = (
    "{count} PRs today, led by {exercise}.",
    "{count} new records. Big session.",
)


# ---------------------------------------------------------------------------
# Pure assembly
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BriefComputation:
    brief: Brief
    rotation: RotationResult
    rest: RestDecision


def is_onboarded(profile: Optional[dict]) -> bool:
    if not profile:
        return False
    return all(profile.get(f) not in (None, "") for f in REQUIRED_PROFILE_FIELDS)


def _pick(pool: Sequence[str], day: date) -> str:
    return pool[day.toordinal() % len(pool)]


def workout_label(sessions: Sequence[WorkoutSession]) -> str:
    """Display name for today's workout: its label, else its muscle group."""
    for s in sessions:
        label = clean_label(s.label)
        if label:
            return label
    group = classify_session(e.name for s in sessions for e in s.exercises)
    return GROUP_LABELS[group] if group else "Workout"


def heaviest_set_today(sessions: Sequence[WorkoutSession]) -> Optional[str]:
    """``"<exercise> <weight>x<reps>"`` for the heaviest working set, first on ties."""
    best = None
    for session in sessions:
        for exercise in session.exercises:
            for s in exercise.working_sets:
                if best is None or s.weight > best[1]:
                    best = (exercise.name, s.weight, s.reps)
    if best is None:
        return None
    return format_set(*best)


def post_workout_message(prs: Sequence[PersonalRecord], day: date) -> str:
    if len(prs) > 1:
        return _pick(MULTI_PR_MESSAGES, day).format(count=len(prs), exercise=prs[0].exercise)
    if prs:
        return _pick(PR_MESSAGES, day).format(exercise=prs[0].exercise)
    return _pick(POST_WORKOUT_MESSAGES, day)


def rest_day_target(rest: RestDecision) -> str:
    if rest.reason == "weekly_goal_met":
        return f"{rest.weekly_count} sessions this week. Recover well"
    if rest.reason == "recovery":
        return f"{rest.consecutive_days} days straight. Time to recover"
    return "Scheduled rest. Recover and refuel"


def build_brief(snapshot: ActivitySnapshot, day: DayContext) -> BriefComputation:
    """Deterministic brief for *day* from *snapshot*. No I/O, no clock."""
    prefs = snapshot.preferences
    today_sessions = snapshot.today_sessions
    trained_today = bool(today_sessions)

    rotation = resolve_rotation(prefs.rotation, snapshot.sessions, day.today)
    rest = decide_rest_day(
        rotation.is_rest,
        snapshot.sessions,
        day,
        prefs.weekly_goal.days_per_week,
        trained_today,
    )
    nutrition = NutritionSummary.build(snapshot.nutrition_goals, snapshot.nutrition_consumed)

    if trained_today:
        if "pr_history" in snapshot.degraded:
            # Without history every lift would look like a first-ever PR
            prs: list[PersonalRecord] = []
        else:
            prs = detect_prs(today_sessions, snapshot.prior_history)
        brief = Brief(
            mode="post_workout",
            focus=f"{workout_label(today_sessions)} Complete",
            achievement=heaviest_set_today(today_sessions),
            prs=prs,
            message=post_workout_message(prs, day.today),
            nutrition=nutrition,
        )
    elif rest.is_rest:
        brief = Brief(
            mode="rest_day",
            focus=REST_FOCUS,
            target=rest_day_target(rest),
            rest_reason=rest.reason,
            nutrition=nutrition,
        )
    else:
        target = select_target(rotation.suggested, snapshot.sessions)
        brief = Brief(
            mode="pre_workout",
            focus=rotation.suggested,
            target=target.describe() if target else GENERIC_TARGET,
            nutrition=nutrition,
        )

    logger.debug(
        "Brief decision for %s: mode=%s suggested=%r (via %s) weekly=%d/%d streak=%d reason=%s",
        day.today, brief.mode, rotation.suggested, rotation.source,
        rest.weekly_count, rest.days_per_week, rest.consecutive_days, rest.reason,
    )
    return BriefComputation(brief=brief, rotation=rotation, rest=rest)


def fallback_brief(snapshot: ActivitySnapshot) -> Brief:
    """Minimal brief used when assembly itself fails."""
    return Brief(
        mode="pre_workout",
        focus=DEFAULT_SUGGESTION,
        target=GENERIC_TARGET,
        nutrition=NutritionSummary.build(snapshot.nutrition_goals, snapshot.nutrition_consumed),
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class DailyBriefService:
    """Generates daily briefs. Stateless apart from its collaborators."""

    def __init__(
        self,
        settings: Settings | None = None,
        activity: ActivityService | None = None,
        generator: BriefTextGenerator | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._activity = activity or get_activity_service()
        self._generator = generator

    async def generate(
        self,
        user_id: str,
        effective_date: Optional[str] = None,
        timezone_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DailyBriefResponse:
        """Build the brief for *user_id*. Never raises for data or generator errors."""
        settings = self._settings
        now = now or datetime.now(timezone.utc)
        tz = resolve_timezone(timezone_name, fallback=settings.default_timezone)
        day = resolve_day(effective_date, now, tz)

        snapshot = await self._activity.load(user_id, day.today, tz)

        if not is_onboarded(snapshot.profile):
            logger.info("User %s has not finished onboarding, no brief", user_id)
            return DailyBriefResponse(status="not_onboarded", generated_at=now)

        computation: Optional[BriefComputation] = None
        try:
            computation = build_brief(snapshot, day)
            brief = computation.brief
        except Exception:
            logger.exception("Brief assembly failed for user %s on %s, using fallback", user_id, day.today)
            brief = fallback_brief(snapshot)

        if computation is not None:
            styled = await self._enrich(snapshot, day, computation)
            if styled is not None:
                brief = brief.model_copy(update={"styled": styled})

        diagnostics = None
        if settings.diagnostics_enabled and computation is not None:
            diagnostics = BriefDiagnostics(
                today=day.today,
                week_start=day.week_start,
                weekly_count=computation.rest.weekly_count,
                days_per_week=computation.rest.days_per_week,
                consecutive_days=computation.rest.consecutive_days,
                trained_today=snapshot.trained_today,
                last_label=computation.rotation.last_label,
                suggested=computation.rotation.suggested,
                rest_reason=computation.rest.reason,
                recent_dates=[s.date for s in snapshot.sessions],
                degraded=list(snapshot.degraded),
                enriched=brief.styled is not None,
            )

        return DailyBriefResponse(
            status="generated",
            brief=brief,
            generated_at=now,
            diagnostics=diagnostics,
        )

    async def _enrich(
        self, snapshot: ActivitySnapshot, day: DayContext, computation: BriefComputation
    ) -> Optional[StyledText]:
        settings = self._settings
        if not settings.enable_ai_enrichment:
            logger.debug("Skipping brief enrichment: disabled by settings")
            return None

        generator = self._generator
        if generator is None:
            if not settings.anthropic_api_key:
                logger.debug("Skipping brief enrichment: no Anthropic API key configured")
                return None
            generator = get_brief_generator()

        last = last_session_before(snapshot.sessions, day.today)
        prompt = build_prompt(
            computation.brief,
            training_split=snapshot.preferences.training_split,
            coaching_mode=snapshot.preferences.coaching_mode,
            weekly_count=computation.rest.weekly_count,
            days_per_week=computation.rest.days_per_week,
            days_since_last=(day.today - last.date).days if last else None,
            focus_max=settings.enrichment_focus_max_chars,
            target_max=settings.enrichment_target_max_chars,
        )
        return await enrich(
            generator,
            prompt,
            settings.enrichment_focus_max_chars,
            settings.enrichment_target_max_chars,
        )


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: DailyBriefService | None = None


def get_daily_brief_service() -> DailyBriefService:
    global _default_service
    if _default_service is None:
        _default_service = DailyBriefService()
    return _default_service
