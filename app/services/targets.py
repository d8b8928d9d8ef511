"""
Target Selector
===============
Finds a "beat this" set from recent history for today's suggested focus.

The scan runs newest session first and keeps the heaviest working set
whose exercise name fits the focus. A later (older) set only replaces the
current pick when it is strictly heavier, so on a tie the most recent
set wins. Warmup sets are skipped entirely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from app.models.workout import WorkoutSession
from app.services.taxonomy import COMPOUND_LIFTS, SPLIT_PATTERNS, KeywordPattern, split_for_label

GENERIC_TARGET = "Time to train"


def format_weight(weight: float) -> str:
    """200.0 → "200", 102.5 → "102.5"."""
    return f"{weight:g}"


def format_set(exercise: str, weight: float, reps: int) -> str:
    return f"{exercise} {format_weight(weight)}x{reps}"


@dataclass(frozen=True)
class TargetSet:
    exercise: str
    weight: float
    reps: int

    def describe(self) -> str:
        return f"Beat: {format_set(self.exercise, self.weight, self.reps)}"


def heaviest_matching_set(
    sessions: Sequence[WorkoutSession],
    pattern: Optional[KeywordPattern],
) -> Optional[TargetSet]:
    """Heaviest working set across *sessions* (newest first) matching *pattern*.

    ``pattern=None`` accepts every exercise.
    """
    ordered = sorted(sessions, key=lambda s: s.date, reverse=True)
    best: Optional[TargetSet] = None
    for session in ordered:
        for exercise in session.exercises:
            if pattern is not None and not pattern.matches(exercise.name):
                continue
            for s in exercise.working_sets:
                if best is None or s.weight > best.weight:
                    best = TargetSet(exercise.name, s.weight, s.reps)
    return best


def select_target(suggested: str, sessions: Sequence[WorkoutSession]) -> Optional[TargetSet]:
    """Pick the target set for *suggested*, falling back to any compound lift."""
    split = split_for_label(suggested)
    if split is not None:
        found = heaviest_matching_set(sessions, SPLIT_PATTERNS[split])
        if found is not None:
            return found
    return heaviest_matching_set(sessions, COMPOUND_LIFTS)
