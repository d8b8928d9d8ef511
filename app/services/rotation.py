"""
Rotation Resolver
=================
Decides which workout the user's rotation says comes next.

Decision logic:
    1. Take the most recent session dated strictly before today. Today's
       own sessions are never consulted, so finishing today's workout
       cannot change today's suggestion; the rotation only advances when
       the calendar day rolls over.
    2. Match that session's label (cleaned) against the rotation: the
       strongest match wins (exact, then substring, then shared token),
       and the first index among equals.
    3. Suggest the entry after the match, wrapping around.
    4. Fallbacks, in order: unlabelled session → classify its exercises
       and match by muscle group; unmatched label or unclassifiable
       session → first non-rest entry; no prior session → first entry.
    5. With no rotation declared at all, use the conventional body-part
       split on the classified muscle group of the last session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional, Sequence

from app.models.workout import RotationSpec, WorkoutSession
from app.services.taxonomy import (
    GROUP_LABELS,
    classify_session,
    clean_label,
    is_rest_label,
    label_match_rank,
    label_trains_group,
    labels_match,
    next_body_part,
)

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION = "Training Day"

MatchSource = Literal["label", "muscle_group", "no_match", "no_history", "body_part", "none"]


@dataclass(frozen=True)
class RotationResult:
    suggested: str
    is_rest: bool
    source: MatchSource
    last_label: Optional[str] = None
    matched_index: Optional[int] = None


def last_session_before(sessions: Sequence[WorkoutSession], today: date) -> Optional[WorkoutSession]:
    """Most recent session dated strictly before *today*.

    Several sessions on the same day: the one listed first wins, which with
    the aggregator's newest-first ordering is the latest logged.
    """
    prior = [s for s in sessions if s.date < today]
    if not prior:
        return None
    latest = max(s.date for s in prior)
    return next(s for s in prior if s.date == latest)


def match_rotation_index(label: str, rotation: Sequence[str]) -> Optional[int]:
    """Index of the rotation entry *label* refers to most strongly.

    An exact match beats a substring match, which beats a shared token,
    so "Lower Body" picks "Lower Body" over an earlier "Upper Body". Among
    equally strong matches the first index wins.
    """
    best: Optional[tuple[int, int]] = None
    for idx, entry in enumerate(rotation):
        rank = label_match_rank(label, entry)
        if rank is not None and (best is None or rank < best[0]):
            best = (rank, idx)
    return best[1] if best is not None else None


def _match_by_group(group: str, rotation: Sequence[str]) -> Optional[int]:
    for idx, entry in enumerate(rotation):
        if labels_match(group, entry) or label_trains_group(entry, group):
            return idx
    return None


def _first_training_entry(rotation: Sequence[str]) -> str:
    for entry in rotation:
        if not is_rest_label(entry):
            return entry
    return rotation[0]


def _result(suggested: str, source: MatchSource, last_label: Optional[str] = None,
            matched_index: Optional[int] = None) -> RotationResult:
    return RotationResult(
        suggested=suggested,
        is_rest=is_rest_label(suggested),
        source=source,
        last_label=last_label,
        matched_index=matched_index,
    )


def resolve_rotation(
    rotation: RotationSpec,
    sessions: Sequence[WorkoutSession],
    today: date,
) -> RotationResult:
    """Suggest today's workout from the rotation and the last session before today."""
    last = last_session_before(sessions, today)
    days = rotation.days

    if not days:
        return _body_part_fallback(last)

    if last is None:
        return _result(days[0], "no_history")

    label = clean_label(last.label)
    if label:
        idx = match_rotation_index(label, days)
        if idx is not None:
            return _result(days[(idx + 1) % len(days)], "label", label, idx)
        logger.debug("Label %r matched no rotation entry in %s", label, days)
        return _result(_first_training_entry(days), "no_match", label)

    # Unlabelled session: infer what it trained from the exercises logged
    group = classify_session(e.name for e in last.exercises)
    if group is not None:
        idx = _match_by_group(group, days)
        if idx is not None:
            return _result(days[(idx + 1) % len(days)], "muscle_group", None, idx)
    return _result(_first_training_entry(days), "no_match")


def _body_part_fallback(last: Optional[WorkoutSession]) -> RotationResult:
    if last is None:
        return _result(DEFAULT_SUGGESTION, "none")
    group = classify_session(e.name for e in last.exercises)
    nxt = next_body_part(group)
    if nxt is None:
        return _result(DEFAULT_SUGGESTION, "none", clean_label(last.label) or None)
    return _result(GROUP_LABELS[nxt], "body_part", clean_label(last.label) or None)
