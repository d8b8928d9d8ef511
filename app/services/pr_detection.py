"""
PR Detector
===========
Flags today's sets that beat everything previously logged for the same
exercise.

Rules:
- Exercises are matched by exact name, case-insensitively. No keyword
  matching here: "Incline Bench Press" and "Bench Press" are different lifts.
- Warmup sets are ignored on both sides of the comparison.
- A PR needs a strictly heavier weight. Matching the old max with more
  reps is not a PR.
- At most one PR per exercise per day: today's best set (heaviest, then
  most reps, then first logged).
"""

from __future__ import annotations

from typing import Iterable, Optional

from app.models.brief import PersonalRecord, PreviousBest
from app.models.workout import SetEntry, WorkoutSession


def exercise_key(name: str) -> str:
    return name.strip().casefold()


def _better(candidate: SetEntry, current: Optional[SetEntry]) -> bool:
    if current is None:
        return True
    if candidate.weight != current.weight:
        return candidate.weight > current.weight
    return candidate.reps > current.reps


def best_sets_by_exercise(
    sessions: Iterable[WorkoutSession],
) -> tuple[dict[str, SetEntry], dict[str, str]]:
    """Best working set per exercise key, plus the first spelling seen per key."""
    best: dict[str, SetEntry] = {}
    names: dict[str, str] = {}
    for session in sessions:
        for exercise in session.exercises:
            key = exercise_key(exercise.name)
            if not key:
                continue
            names.setdefault(key, exercise.name.strip())
            for s in exercise.working_sets:
                if _better(s, best.get(key)):
                    best[key] = s
    return best, names


def detect_prs(
    today_sessions: Iterable[WorkoutSession],
    prior_sessions: Iterable[WorkoutSession],
) -> list[PersonalRecord]:
    """Compare today's best sets against all prior working sets.

    *prior_sessions* must contain only sessions dated before today.
    """
    today_best, today_names = best_sets_by_exercise(today_sessions)
    prior_best, _ = best_sets_by_exercise(prior_sessions)

    prs: list[PersonalRecord] = []
    for key, display_name in today_names.items():
        best = today_best.get(key)
        if best is None:
            continue  # only warmups logged
        previous = prior_best.get(key)
        if previous is not None and best.weight <= previous.weight:
            continue
        prs.append(
            PersonalRecord(
                exercise=display_name,
                weight=best.weight,
                reps=best.reps,
                previous_best=(
                    PreviousBest(weight=previous.weight, reps=previous.reps)
                    if previous is not None
                    else None
                ),
            )
        )
    return prs
