"""
Nutrition Schemas
=================
Macro totals passed through the brief unmodified. The engine sums
today's consumed meals and reads the user's goals; it never infers or
adjusts either.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


def _fmt(value: float) -> str:
    return f"{value:g}"


class NutritionTotals(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0

    def macro_line(self) -> str:
        """Compact display form, e.g. ``2000cal | 150P 200C 65F``."""
        return (
            f"{_fmt(self.calories)}cal | "
            f"{_fmt(self.protein)}P {_fmt(self.carbs)}C {_fmt(self.fat)}F"
        )


class NutritionSummary(BaseModel):
    """Goals and consumed-today totals as shown on the brief card."""

    goals: NutritionTotals
    consumed: NutritionTotals = Field(default_factory=NutritionTotals)
    summary: str = Field(
        ...,
        description="Macro goal line. Always computed locally, never generated.",
    )

    @classmethod
    def build(cls, goals: NutritionTotals, consumed: NutritionTotals) -> "NutritionSummary":
        return cls(goals=goals, consumed=consumed, summary=goals.macro_line())
