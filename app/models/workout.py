"""
Workout Schemas
===============
Read-side models for logged training data. The logging flow owns these
rows; the brief engine only ever reads them, so there are no Create
models here.

Key design decisions:
- ``variant`` tolerates unknown values by mapping them to "other":
  the logging UI has added variants before and a new one must not
  break brief generation.
- ``label`` is the raw ``workouts.notes`` value. Cleaning (trimming,
  stripping the ``[DEBUG]`` tag) happens in the rotation service.
"""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

SetVariant = Literal["normal", "warmup", "drop", "failure", "other"]

VALID_SET_VARIANTS = frozenset({"normal", "warmup", "drop", "failure", "other"})


# ---------------------------------------------------------------------------
# Logged data
# ---------------------------------------------------------------------------

class SetEntry(BaseModel):
    """A single logged set."""

    id: str = ""
    exercise_id: str = ""
    weight: float = Field(default=0, ge=0)
    reps: int = Field(default=0, ge=0)
    variant: SetVariant = "normal"

    @field_validator("variant", mode="before")
    @classmethod
    def _normalise_variant(cls, value: object) -> str:
        if value is None or value == "":
            return "normal"
        text = str(value).strip().lower()
        return text if text in VALID_SET_VARIANTS else "other"

    @property
    def is_working(self) -> bool:
        """Warmups are not genuine effort and never count as targets or PRs."""
        return self.variant != "warmup"


class ExerciseEntry(BaseModel):
    """One exercise inside a session, with its sets in logging order."""

    id: str = ""
    session_id: str = ""
    name: str
    order_index: int = 0
    sets: list[SetEntry] = Field(default_factory=list)

    @property
    def working_sets(self) -> list[SetEntry]:
        return [s for s in self.sets if s.is_working]


class WorkoutSession(BaseModel):
    """A logged workout. More than one per day is allowed."""

    id: str
    date: date
    label: Optional[str] = Field(
        default=None,
        description="Freeform name, e.g. 'Push Day'. Stored as workouts.notes.",
    )
    exercises: list[ExerciseEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Training preferences (coach_memory)
# ---------------------------------------------------------------------------

class RotationSpec(BaseModel):
    """User-declared cyclic order of training days."""

    days: list[str] = Field(default_factory=list)

    @field_validator("days", mode="before")
    @classmethod
    def _drop_blank_days(cls, value: object) -> list[str]:
        if not value:
            return []
        return [str(d).strip() for d in value if str(d).strip()]


class WeeklyGoal(BaseModel):
    days_per_week: int = Field(default=4, ge=0, le=7)


class TrainingPreferences(BaseModel):
    """Everything the engine reads from coach_memory."""

    rotation: RotationSpec = Field(default_factory=RotationSpec)
    weekly_goal: WeeklyGoal = Field(default_factory=WeeklyGoal)
    # Context for the enrichment prompt only
    training_split: str = "unknown"
    coaching_mode: str = "assist"
