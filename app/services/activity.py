"""
Activity Aggregator
===================
Loads everything the brief engine reads for one user and one day.

Sub-queries (issued concurrently, each on a worker thread because the
Supabase client is synchronous):
    - profile                      → onboarding check
    - coach_memory                 → rotation, weekly goal, split name
    - recent workouts (≈14)        → with nested exercises and sets
    - today's consumed meals       → nutrition totals
    - nutrition_goals              → macro goals
Then, only when something was logged today:
    - all prior workouts holding today's exercise names → PR history,
      narrowed by name server-side and read page by page, since PostgREST
      truncates large responses without an error

Pure data access, no business logic. A failed sub-query is logged,
recorded in ``snapshot.degraded`` and replaced by an empty / default
result. It never aborts the brief: a broken meals query must not cost
the user their training brief.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import date, tzinfo
from functools import partial
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar

from pydantic import ValidationError

from app.config import Settings, get_settings
from app.db.supabase import get_supabase_client
from app.models.nutrition import NutritionTotals
from app.models.workout import (
    ExerciseEntry,
    RotationSpec,
    SetEntry,
    TrainingPreferences,
    WeeklyGoal,
    WorkoutSession,
)
from app.services.dates import to_local_day
from app.services.pr_detection import exercise_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MACROS = ("calories", "protein", "carbs", "fat")

# Ids per in() filter; keeps the request URL well under proxy limits
IN_FILTER_CHUNK = 200


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass
class ActivitySnapshot:
    today: date
    profile: Optional[dict] = None
    preferences: TrainingPreferences = field(default_factory=TrainingPreferences)
    sessions: list[WorkoutSession] = field(default_factory=list)  # newest first, ≤ today
    prior_history: list[WorkoutSession] = field(default_factory=list)  # before today, PR lookups
    nutrition_goals: NutritionTotals = field(default_factory=NutritionTotals)
    nutrition_consumed: NutritionTotals = field(default_factory=NutritionTotals)
    degraded: list[str] = field(default_factory=list)

    @property
    def today_sessions(self) -> list[WorkoutSession]:
        return [s for s in self.sessions if s.date == self.today]

    @property
    def trained_today(self) -> bool:
        return any(s.date == self.today for s in self.sessions)


# ---------------------------------------------------------------------------
# Row parsing helpers
# ---------------------------------------------------------------------------

def parse_rotation(value: Any) -> RotationSpec:
    """coach_memory.split_rotation is a JSON array, or occasionally a CSV string."""
    if value is None:
        return RotationSpec()
    if isinstance(value, list):
        return RotationSpec(days=value)
    text = str(value).strip()
    if not text:
        return RotationSpec()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = text.split(",")
    if isinstance(parsed, str):
        parsed = [parsed]
    if not isinstance(parsed, list):
        logger.warning("Ignoring split_rotation of unexpected shape: %r", text[:100])
        return RotationSpec()
    return RotationSpec(days=parsed)


def parse_preferences(rows: list[dict], default_days_per_week: int) -> TrainingPreferences:
    memory = {row.get("key"): row.get("value") for row in rows if row.get("key")}

    days_per_week = default_days_per_week
    raw_days = memory.get("days_per_week")
    if raw_days not in (None, ""):
        try:
            days_per_week = int(float(str(raw_days).strip()))
        except ValueError:
            logger.warning("Ignoring non-numeric days_per_week %r", raw_days)
    days_per_week = min(max(days_per_week, 1), 7)

    return TrainingPreferences(
        rotation=parse_rotation(memory.get("split_rotation")),
        weekly_goal=WeeklyGoal(days_per_week=days_per_week),
        training_split=str(memory.get("training_split") or "unknown"),
        coaching_mode=str(memory.get("coaching_mode") or "assist"),
    )


def sum_consumed(rows: list[dict]) -> NutritionTotals:
    totals = {m: 0.0 for m in _MACROS}
    for row in rows:
        if row.get("consumed") is False:
            continue
        for m in _MACROS:
            totals[m] += float(row.get(m) or 0)
    return NutritionTotals(**totals)


def goals_from_row(row: Optional[dict], settings: Settings) -> NutritionTotals:
    defaults = {
        "calories": settings.default_calorie_goal,
        "protein": settings.default_protein_goal,
        "carbs": settings.default_carbs_goal,
        "fat": settings.default_fat_goal,
    }
    if not row:
        return NutritionTotals(**defaults)
    return NutritionTotals(**{
        m: float(row[m]) if row.get(m) is not None else defaults[m] for m in _MACROS
    })


def name_ilike_filter(names: Iterable[str]) -> str:
    """PostgREST ``or=`` filter matching any of *names* case-insensitively.

    Values are double-quoted so commas, dots and parentheses in exercise
    names survive; quotes and backslashes inside are escaped.
    """
    parts = []
    for name in sorted(names):
        escaped = name.replace("\\", "\\\\").replace('"', '\\"')
        parts.append(f'name.ilike."{escaped}"')
    return ",".join(parts)


def _chunks(items: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def assemble_sessions(
    workout_rows: list[dict],
    exercise_rows: list[dict],
    set_rows: list[dict],
    tz: tzinfo,
) -> list[WorkoutSession]:
    """Nest flat workouts / exercises / sets rows, newest session first.

    A set row that fails validation (negative weight or reps, non-numeric
    values) is skipped on its own so one bad row cannot empty the history.
    """
    sets_by_exercise: dict[str, list[SetEntry]] = {}
    for row in sorted(set_rows, key=lambda r: r.get("order_index") or 0):
        try:
            entry = SetEntry(
                id=str(row.get("id") or ""),
                exercise_id=str(row["exercise_id"]),
                weight=float(row.get("weight") or 0),
                reps=int(row.get("reps") or 0),
                variant=row.get("variant"),
            )
        except (ValidationError, TypeError, ValueError) as exc:
            logger.warning("Skipping invalid set row %s: %s", row.get("id"), exc)
            continue
        sets_by_exercise.setdefault(entry.exercise_id, []).append(entry)

    exercises_by_workout: dict[str, list[ExerciseEntry]] = {}
    for row in sorted(exercise_rows, key=lambda r: r.get("order_index") or 0):
        ex_id = str(row["id"])
        entry = ExerciseEntry(
            id=ex_id,
            session_id=str(row["workout_id"]),
            name=str(row.get("name") or ""),
            order_index=int(row.get("order_index") or 0),
            sets=sets_by_exercise.get(ex_id, []),
        )
        exercises_by_workout.setdefault(entry.session_id, []).append(entry)

    sessions = [
        WorkoutSession(
            id=str(row["id"]),
            date=to_local_day(row["date"], tz),
            label=row.get("notes"),
            exercises=exercises_by_workout.get(str(row["id"]), []),
        )
        for row in workout_rows
    ]
    # Stable sort keeps the store's order within a day
    return sorted(sessions, key=lambda s: s.date, reverse=True)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ActivityService:
    """Read-only access to a user's training and nutrition data."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._db = get_supabase_client()

    async def load(self, user_id: str, today: date, tz: tzinfo) -> ActivitySnapshot:
        """Fetch everything the engine needs. Never raises for data errors."""
        snapshot = ActivitySnapshot(today=today)
        default_prefs = parse_preferences([], self._settings.default_days_per_week)
        default_goals = goals_from_row(None, self._settings)

        profile, preferences, sessions, consumed, goals = await asyncio.gather(
            self._guarded("profile", snapshot, None, self._fetch_profile, user_id),
            self._guarded("training_preferences", snapshot, default_prefs, self._fetch_preferences, user_id),
            self._guarded("recent_sessions", snapshot, [], self._fetch_recent_sessions, user_id, today, tz),
            self._guarded("nutrition_consumed", snapshot, NutritionTotals(), self._fetch_consumed, user_id, today),
            self._guarded("nutrition_goals", snapshot, default_goals, self._fetch_goals, user_id),
        )

        snapshot.profile = profile
        snapshot.preferences = preferences
        snapshot.sessions = [s for s in sessions if s.date <= today]
        snapshot.nutrition_consumed = consumed
        snapshot.nutrition_goals = goals

        names = {
            exercise_key(e.name)
            for s in snapshot.today_sessions
            for e in s.exercises
            if e.name.strip()
        }
        if names:
            history = await self._guarded(
                "pr_history", snapshot, [], self._fetch_prior_history, user_id, today, names, tz
            )
            snapshot.prior_history = [s for s in history if s.date < today]

        logger.debug(
            "Loaded activity for user %s on %s: %d sessions, %d prior for PRs, degraded=%s",
            user_id, today, len(snapshot.sessions), len(snapshot.prior_history), snapshot.degraded,
        )
        return snapshot

    async def _guarded(
        self,
        name: str,
        snapshot: ActivitySnapshot,
        default: T,
        fn: Callable[..., T],
        *args: Any,
    ) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception:
            logger.exception("Brief sub-query '%s' failed, using empty result", name)
            snapshot.degraded.append(name)
            return default

    # ---- Sub-queries (run on worker threads) -----------------------------

    def _fetch_profile(self, user_id: str) -> Optional[dict]:
        result = (
            self._db.table("profiles")
            .select("*")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        return result.data if result is not None else None

    def _fetch_preferences(self, user_id: str) -> TrainingPreferences:
        result = (
            self._db.table("coach_memory")
            .select("key, value")
            .eq("user_id", user_id)
            .execute()
        )
        return parse_preferences(result.data or [], self._settings.default_days_per_week)

    def _fetch_goals(self, user_id: str) -> NutritionTotals:
        result = (
            self._db.table("nutrition_goals")
            .select("*")
            .eq("user_id", user_id)
            .maybe_single()
            .execute()
        )
        return goals_from_row(result.data if result is not None else None, self._settings)

    def _fetch_consumed(self, user_id: str, today: date) -> NutritionTotals:
        result = (
            self._db.table("meals")
            .select("calories, protein, carbs, fat, consumed")
            .eq("user_id", user_id)
            .eq("date", today.isoformat())
            .eq("consumed", True)
            .execute()
        )
        return sum_consumed(result.data or [])

    def _fetch_recent_sessions(self, user_id: str, today: date, tz: tzinfo) -> list[WorkoutSession]:
        workouts = (
            self._db.table("workouts")
            .select("id, date, notes")
            .eq("user_id", user_id)
            .lte("date", today.isoformat())
            .order("date", desc=True)
            .limit(self._settings.brief_history_window)
            .execute()
        ).data or []
        return self._hydrate(workouts, tz)

    def _fetch_prior_history(
        self, user_id: str, today: date, names: set[str], tz: tzinfo
    ) -> list[WorkoutSession]:
        workouts = self._select_all(partial(self._prior_workouts_query, user_id, today))
        return self._hydrate(workouts, tz, only_names=names)

    def _hydrate(
        self,
        workouts: list[dict],
        tz: tzinfo,
        only_names: Optional[set[str]] = None,
    ) -> list[WorkoutSession]:
        if not workouts:
            return []

        workout_ids = [str(w["id"]) for w in workouts]
        name_filter = name_ilike_filter(only_names) if only_names else None
        exercises: list[dict] = []
        for chunk in _chunks(workout_ids, IN_FILTER_CHUNK):
            exercises.extend(self._select_all(partial(self._exercise_query, chunk, name_filter)))

        # ilike is only a coarse server-side narrowing (it treats % and _
        # as wildcards); the exact case-insensitive check happens here.
        known = set(workout_ids)
        exercises = [
            e for e in exercises
            if str(e.get("workout_id")) in known
            and (only_names is None or exercise_key(str(e.get("name") or "")) in only_names)
        ]

        sets: list[dict] = []
        exercise_ids = [str(e["id"]) for e in exercises]
        for chunk in _chunks(exercise_ids, IN_FILTER_CHUNK):
            sets.extend(self._select_all(partial(self._set_query, chunk)))
        wanted = set(exercise_ids)
        sets = [s for s in sets if str(s.get("exercise_id")) in wanted]

        return assemble_sessions(workouts, exercises, sets, tz)

    def _prior_workouts_query(self, user_id: str, today: date) -> Any:
        return (
            self._db.table("workouts")
            .select("id, date, notes")
            .eq("user_id", user_id)
            .lt("date", today.isoformat())
            .order("id")
        )

    def _exercise_query(self, workout_ids: list[str], name_filter: Optional[str]) -> Any:
        query = (
            self._db.table("exercises")
            .select("id, workout_id, name, order_index")
            .in_("workout_id", workout_ids)
        )
        if name_filter:
            query = query.or_(name_filter)
        return query.order("id")

    def _set_query(self, exercise_ids: list[str]) -> Any:
        return (
            self._db.table("sets")
            .select("id, exercise_id, weight, reps, variant, order_index")
            .in_("exercise_id", exercise_ids)
            .order("id")
        )

    def _select_all(self, build: Callable[[], Any]) -> list[dict]:
        """Run a query page by page until a short page comes back.

        PostgREST silently truncates responses at its max-rows setting, so
        any read without a natural bound must page.
        """
        page_size = self._settings.supabase_page_size
        rows: list[dict] = []
        start = 0
        while True:
            page = build().range(start, start + page_size - 1).execute().data or []
            rows.extend(page)
            if len(page) < page_size:
                return rows
            start += page_size


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_service: ActivityService | None = None


def get_activity_service() -> ActivityService:
    global _default_service
    if _default_service is None:
        _default_service = ActivityService()
    return _default_service
