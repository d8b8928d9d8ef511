"""
Tests for the PR Detector
=========================
Covers:
- One PR per exercise per day, using today's best set
- Strictly heavier required; matching the old max is not a PR
- First-ever lift is a PR with no previous best
- Warmups ignored on both sides
- Exact (case-insensitive) name matching, never keyword matching

Run: pytest tests/test_pr_detection.py -v
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta

from app.models.brief import PreviousBest
from app.models.workout import ExerciseEntry, SetEntry, WorkoutSession
from app.services.pr_detection import best_sets_by_exercise, detect_prs

TODAY = date(2026, 3, 5)


def _session(days_ago: int, exercises: dict[str, list[tuple]]) -> WorkoutSession:
    return WorkoutSession(
        id=str(uuid.uuid4()),
        date=TODAY - timedelta(days=days_ago),
        exercises=[
            ExerciseEntry(
                name=name,
                order_index=i,
                sets=[SetEntry(weight=s[0], reps=s[1], variant=s[2] if len(s) > 2 else "normal") for s in sets],
            )
            for i, (name, sets) in enumerate(exercises.items())
        ],
    )


class TestDetectPrs:

    def test_heavier_set_is_pr_once(self):
        prior = [_session(4, {"Bench Press": [(190, 5)]})]
        today = [_session(0, {"Bench Press": [(200, 5), (190, 8)]})]

        prs = detect_prs(today, prior)

        assert len(prs) == 1
        assert prs[0].exercise == "Bench Press"
        assert (prs[0].weight, prs[0].reps) == (200, 5)
        assert prs[0].previous_best == PreviousBest(weight=190, reps=5)

    def test_matching_old_max_is_not_pr(self):
        prior = [_session(4, {"Bench Press": [(200, 5)]})]
        today = [_session(0, {"Bench Press": [(200, 8)]})]
        assert detect_prs(today, prior) == []

    def test_lighter_set_is_not_pr(self):
        prior = [_session(10, {"Squat": [(315, 3)]}), _session(3, {"Squat": [(275, 5)]})]
        today = [_session(0, {"Squat": [(300, 5)]})]
        assert detect_prs(today, prior) == []

    def test_first_ever_lift_is_pr(self):
        today = [_session(0, {"Hip Thrust": [(225, 10)]})]
        prs = detect_prs(today, [])
        assert len(prs) == 1
        assert prs[0].previous_best is None

    def test_warmups_ignored_on_both_sides(self):
        prior = [_session(2, {"Deadlift": [(405, 1, "warmup"), (315, 5)]})]
        today = [_session(0, {"Deadlift": [(500, 1, "warmup"), (335, 3)]})]

        prs = detect_prs(today, prior)

        assert [(p.weight, p.reps) for p in prs] == [(335, 3)]
        assert prs[0].previous_best.weight == 315

    def test_only_warmups_today_is_not_pr(self):
        today = [_session(0, {"Bench Press": [(135, 10, "warmup")]})]
        assert detect_prs(today, []) == []

    def test_name_match_is_case_insensitive(self):
        prior = [_session(3, {"bench press": [(200, 5)]})]
        today = [_session(0, {"Bench Press ": [(195, 5)]})]
        assert detect_prs(today, prior) == []

    def test_similar_names_are_different_lifts(self):
        prior = [_session(3, {"Bench Press": [(225, 5)]})]
        today = [_session(0, {"Incline Bench Press": [(155, 8)]})]
        prs = detect_prs(today, prior)
        assert [p.exercise for p in prs] == ["Incline Bench Press"]

    def test_multiple_prs_keep_logging_order(self):
        prior = [_session(3, {"Bench Press": [(185, 5)], "Overhead Press": [(115, 5)]})]
        today = [_session(0, {"Overhead Press": [(120, 5)], "Bench Press": [(190, 3)]})]
        assert [p.exercise for p in detect_prs(today, prior)] == ["Overhead Press", "Bench Press"]

    def test_same_exercise_across_two_sessions_today(self):
        today = [
            _session(0, {"Curl": [(40, 10)]}),
            _session(0, {"Curl": [(45, 8)]}),
        ]
        prs = detect_prs(today, [_session(7, {"Curl": [(35, 12)]})])
        assert len(prs) == 1
        assert prs[0].weight == 45


class TestBestSets:

    def test_heavier_then_more_reps(self):
        sessions = [_session(1, {"Row": [(135, 8), (155, 5), (155, 6)]})]
        best, names = best_sets_by_exercise(sessions)
        assert (best["row"].weight, best["row"].reps) == (155, 6)
        assert names["row"] == "Row"
