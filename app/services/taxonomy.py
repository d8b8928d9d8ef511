"""
Exercise Taxonomy
=================
Static keyword tables and the fuzzy label matcher shared by the rotation
resolver and the target selector.

Workout labels and exercise names are freeform text typed by the user,
so everything here is substring / token matching on lower-cased text.
Keep the tables as data: adding a keyword should never mean touching the
matching logic.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

# ---------------------------------------------------------------------------
# Label matching
# ---------------------------------------------------------------------------

# Tokens that carry no information about *which* workout a label is.
# Without this, "Push Day" and "Leg Day" would match on "day".
FILLER_TOKENS = frozenset({
    "day", "days", "workout", "session", "training", "train", "the", "and",
    "&", "+", "/", "-", "a", "of", "focus",
})

DEBUG_TAG = re.compile(r"^\s*\[debug\]\s*", re.IGNORECASE)

_TOKEN_SPLIT = re.compile(r"\s+")


def clean_label(label: Optional[str]) -> str:
    """Trim a freeform session label and strip any ``[DEBUG]`` prefix."""
    if not label:
        return ""
    return DEBUG_TAG.sub("", label).strip()


def _tokens(text: str) -> set[str]:
    return {t for t in _TOKEN_SPLIT.split(text) if t and t not in FILLER_TOKENS}


MATCH_EXACT = 0
MATCH_SUBSTRING = 1
MATCH_TOKEN = 2


def label_match_rank(candidate: str, rotation_entry: str) -> Optional[int]:
    """How strongly a freeform label refers to a rotation entry.

    ``MATCH_EXACT`` for equal strings, ``MATCH_SUBSTRING`` when either
    contains the other, ``MATCH_TOKEN`` when they only share a meaningful
    token, None when unrelated. Lower is stronger. All comparisons are
    case-insensitive.
    """
    a = candidate.strip().lower()
    b = rotation_entry.strip().lower()
    if not a or not b:
        return None
    if a == b:
        return MATCH_EXACT
    if a in b or b in a:
        return MATCH_SUBSTRING
    if _tokens(a) & _tokens(b):
        return MATCH_TOKEN
    return None


def labels_match(candidate: str, rotation_entry: str) -> bool:
    """Does a freeform workout label refer to a rotation entry?

    True when either lower-cased string contains the other, or when they
    share at least one meaningful whitespace-delimited token.
    """
    return label_match_rank(candidate, rotation_entry) is not None


def is_rest_label(label: str) -> bool:
    """A rotation entry is a scheduled rest day if it says "rest"."""
    return "rest" in _TOKEN_SPLIT.split(label.strip().lower())


# ---------------------------------------------------------------------------
# Muscle-group classification
# ---------------------------------------------------------------------------

# Checked in this order per exercise name: first group with a hit wins.
# Shoulders sits ahead of back so "lateral raise" is not read as "lat";
# legs sits ahead of back and arms so "back squat" and "leg curl" stay legs.
MUSCLE_GROUP_KEYWORDS: dict[str, tuple[str, ...]] = {
    "chest": ("bench", "chest", "fly", "flye", "pec", "push-up", "pushup", "incline", "decline", "dip"),
    "shoulders": ("shoulder", "delt", "lateral raise", "ohp", "overhead press", "military", "arnold", "face pull"),
    "legs": ("squat", "leg", "lunge", "calf", "hip thrust", "glute", "hamstring", "quad", "step-up"),
    "back": ("row", "lat ", "pulldown", "pull-up", "pullup", "chin-up", "chinup", "back", "deadlift", "rdl", "shrug"),
    "arms": ("curl", "bicep", "tricep", "arm", "pushdown", "skull", "extension", "hammer"),
}

# Conventional body-part split order, used when no rotation is declared.
BODY_PART_ROTATION: tuple[str, ...] = ("chest", "back", "shoulders", "arms", "legs")

GROUP_LABELS: dict[str, str] = {
    "chest": "Chest",
    "back": "Back",
    "shoulders": "Shoulders",
    "arms": "Arms",
    "legs": "Legs",
}


def classify_exercise(name: str) -> Optional[str]:
    """Muscle group for one exercise name, or None if nothing matches."""
    text = f" {name.strip().lower()} "
    for group, keywords in MUSCLE_GROUP_KEYWORDS.items():
        if any(k in text for k in keywords):
            return group
    return None


def classify_session(exercise_names: Iterable[str]) -> Optional[str]:
    """Dominant muscle group across a session's exercises.

    Ties go to the group listed first in ``MUSCLE_GROUP_KEYWORDS``.
    """
    counts = Counter(g for g in map(classify_exercise, exercise_names) if g)
    if not counts:
        return None
    order = list(MUSCLE_GROUP_KEYWORDS)
    return max(counts, key=lambda g: (counts[g], -order.index(g)))


def next_body_part(group: Optional[str]) -> Optional[str]:
    """chest → back → shoulders → arms → legs → chest."""
    if group not in BODY_PART_ROTATION:
        return None
    idx = BODY_PART_ROTATION.index(group)
    return BODY_PART_ROTATION[(idx + 1) % len(BODY_PART_ROTATION)]


# ---------------------------------------------------------------------------
# Split → exercise patterns (target selection)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeywordPattern:
    include: tuple[str, ...]
    exclude: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()  # muscle groups this split trains

    def matches(self, exercise_name: str) -> bool:
        text = f" {exercise_name.strip().lower()} "
        if any(k in text for k in self.exclude):
            return False
        return any(k in text for k in self.include)


_LOWER_BODY_MARKERS = ("leg", "squat", "calf", "hip", "lunge")

_PUSH = ("bench", "chest", "press", "fly", "flye", "dip", "shoulder", "delt", "tricep", "pushdown", "push-up", "ohp")
_PULL = ("row", "pull", "lat ", "pulldown", "chin-up", "chinup", "curl", "bicep", "deadlift", "rdl", "shrug", "face pull")
_LEGS = ("squat", "leg", "lunge", "calf", "deadlift", "rdl", "hip thrust", "glute", "hamstring", "step-up")

# Keys are looked up as whole tokens of the (lower-cased) rotation label.
SPLIT_PATTERNS: dict[str, KeywordPattern] = {
    "push": KeywordPattern(_PUSH, exclude=_LOWER_BODY_MARKERS, groups=("chest", "shoulders", "arms")),
    "pull": KeywordPattern(_PULL, exclude=("leg curl", "hamstring"), groups=("back", "arms")),
    "legs": KeywordPattern(_LEGS, groups=("legs",)),
    "upper": KeywordPattern(_PUSH + _PULL, exclude=_LOWER_BODY_MARKERS + ("deadlift", "rdl"),
                            groups=("chest", "back", "shoulders", "arms")),
    "lower": KeywordPattern(_LEGS, groups=("legs",)),
    "full": KeywordPattern(("bench", "squat", "deadlift", "press", "row", "pull-up", "pullup"),
                           groups=("chest", "back", "shoulders", "arms", "legs")),
    "chest": KeywordPattern(MUSCLE_GROUP_KEYWORDS["chest"] + ("press",),
                            exclude=_LOWER_BODY_MARKERS + ("shoulder", "overhead", "military", "arnold", "ohp"),
                            groups=("chest",)),
    "back": KeywordPattern(MUSCLE_GROUP_KEYWORDS["back"], exclude=("lateral",), groups=("back",)),
    "shoulders": KeywordPattern(MUSCLE_GROUP_KEYWORDS["shoulders"] + ("press",), exclude=_LOWER_BODY_MARKERS + ("bench", "incline"),
                                groups=("shoulders",)),
    "arms": KeywordPattern(MUSCLE_GROUP_KEYWORDS["arms"], exclude=("leg",), groups=("arms",)),
}

# Alternate spellings users type in labels
SPLIT_ALIASES: dict[str, str] = {
    "leg": "legs",
    "lower body": "lower",
    "upper body": "upper",
    "full body": "full",
    "fullbody": "full",
    "shoulder": "shoulders",
    "arm": "arms",
}

# Fallback when nothing matches the day's focus
COMPOUND_LIFTS = KeywordPattern(("bench", "squat", "deadlift", "press", "row"))


def split_for_label(label: str) -> Optional[str]:
    """Map a rotation / workout label to a ``SPLIT_PATTERNS`` key."""
    text = label.strip().lower()
    if not text:
        return None
    for alias, key in SPLIT_ALIASES.items():
        if " " in alias and alias in text:
            return key
    for token in _TOKEN_SPLIT.split(text):
        token = token.strip(",.:;!()")
        if token in SPLIT_PATTERNS:
            return token
        if token in SPLIT_ALIASES:
            return SPLIT_ALIASES[token]
    return None


def label_trains_group(label: str, group: str) -> bool:
    """Would a rotation entry like "Push" cover a session classified as *group*?"""
    split = split_for_label(label)
    if split is None:
        return False
    return group in SPLIT_PATTERNS[split].groups
