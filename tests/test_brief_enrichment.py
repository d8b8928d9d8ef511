"""
Tests for Brief Enrichment
==========================
Covers:
- Reply parsing: JSON embedded in prose, missing / non-string / empty /
  oversize fields are all rejected
- enrich(): timeout and generator errors return None, never raise
- AnthropicBriefGenerator: request shape and text-block extraction (respx)
- Prompt carries the engine's decisions and never asks for macros

Run: pytest tests/test_brief_enrichment.py -v
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import respx
from httpx import Response

from app.config import Settings
from app.models.brief import Brief, PersonalRecord, StyledText
from app.models.nutrition import NutritionSummary, NutritionTotals
from app.services.brief_enrichment import (
    AnthropicBriefGenerator,
    build_prompt,
    enrich,
    parse_styled_text,
)

_API_URL = "https://api.anthropic.com/v1/messages"

_NUTRITION = NutritionSummary.build(NutritionTotals(calories=2000, protein=150, carbs=200, fat=65), NutritionTotals())


class _StubGenerator:
    def __init__(self, reply: str = "", delay: float = 0, error: Exception | None = None) -> None:
        self.timeout_seconds = 0.05
        self._reply = reply
        self._delay = delay
        self._error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error:
            raise self._error
        return self._reply


# ---------------------------------------------------------------------------
# parse_styled_text
# ---------------------------------------------------------------------------

class TestParseStyledText:

    def test_plain_json(self):
        styled = parse_styled_text('{"focus": "Pull Power", "target": "Beat 185x5 today"}', 15, 50)
        assert styled == StyledText(focus="Pull Power", target="Beat 185x5 today")

    def test_json_wrapped_in_prose(self):
        raw = 'Sure! Here you go:\n```json\n{"focus": " Leg Day ", "target": "Squat 275x5"}\n```'
        styled = parse_styled_text(raw, 15, 50)
        assert styled.focus == "Leg Day"

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "no json here",
            '{"focus": "Push"}',
            '{"focus": "Push", "target": 185}',
            '{"focus": "", "target": "Beat it"}',
            '{"focus": "Push", "target": "Beat it"',
            '{"focus": "Push", target: "Beat it"}',
            '["Push", "Beat it"]',
        ],
    )
    def test_rejects_malformed(self, raw):
        assert parse_styled_text(raw, 15, 50) is None

    def test_rejects_over_budget(self):
        raw = json.dumps({"focus": "A very long focus line", "target": "ok"})
        assert parse_styled_text(raw, 15, 50) is None

        raw = json.dumps({"focus": "Push", "target": "x" * 51})
        assert parse_styled_text(raw, 15, 50) is None


# ---------------------------------------------------------------------------
# enrich
# ---------------------------------------------------------------------------

class TestEnrich:

    @pytest.mark.asyncio
    async def test_valid_reply(self):
        gen = _StubGenerator('{"focus": "Push Hard", "target": "Bench 185x6"}')
        styled = await enrich(gen, "prompt", 15, 50)
        assert styled.target == "Bench 185x6"
        assert gen.prompts == ["prompt"]

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self):
        gen = _StubGenerator('{"focus": "Late", "target": "Too late"}', delay=1.0)
        assert await enrich(gen, "prompt", 15, 50) is None

    @pytest.mark.asyncio
    async def test_generator_error_returns_none(self):
        gen = _StubGenerator(error=httpx.ConnectError("boom"))
        assert await enrich(gen, "prompt", 15, 50) is None

    @pytest.mark.asyncio
    async def test_malformed_reply_returns_none(self):
        assert await enrich(_StubGenerator("I think you should rest."), "prompt", 15, 50) is None


# ---------------------------------------------------------------------------
# AnthropicBriefGenerator
# ---------------------------------------------------------------------------

class TestAnthropicBriefGenerator:

    @pytest.mark.asyncio
    @respx.mock
    async def test_joins_text_blocks(self):
        route = respx.post(_API_URL).mock(
            return_value=Response(200, json={
                "content": [
                    {"type": "text", "text": '{"focus": "Pull",'},
                    {"type": "tool_use", "id": "x"},
                    {"type": "text", "text": '"target": "Row 155x8"}'},
                ]
            })
        )
        gen = AnthropicBriefGenerator(Settings(anthropic_api_key="sk-test", enrichment_timeout_seconds=2.0))

        raw = await gen.generate("hello")

        assert raw == '{"focus": "Pull",\n"target": "Row 155x8"}'
        request = route.calls.last.request
        assert request.headers["x-api-key"] == "sk-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        body = json.loads(request.content)
        assert body["messages"] == [{"role": "user", "content": "hello"}]
        assert body["max_tokens"] == 150

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_raises(self):
        respx.post(_API_URL).mock(return_value=Response(529, json={"error": "overloaded"}))
        gen = AnthropicBriefGenerator(Settings(anthropic_api_key="sk-test"))
        with pytest.raises(httpx.HTTPStatusError):
            await gen.generate("hello")

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_through_enrich_is_none(self):
        respx.post(_API_URL).mock(return_value=Response(500))
        gen = AnthropicBriefGenerator(Settings(anthropic_api_key="sk-test"))
        assert await enrich(gen, "hello", 15, 50) is None


# ---------------------------------------------------------------------------
# build_prompt
# ---------------------------------------------------------------------------

class TestBuildPrompt:

    def _prompt(self, brief: Brief, days_since_last: int | None = 1) -> str:
        return build_prompt(
            brief,
            training_split="ppl",
            coaching_mode="assist",
            weekly_count=2,
            days_per_week=4,
            days_since_last=days_since_last,
            focus_max=15,
            target_max=50,
        )

    def test_training_day(self):
        brief = Brief(mode="pre_workout", focus="Pull", target="Beat: Barbell Row 155x8", nutrition=_NUTRITION)
        prompt = self._prompt(brief)
        assert "TRAINING DAY, suggested: Pull" in prompt
        assert "Beat: Barbell Row 155x8" in prompt
        assert "Workouts this week: 2/4" in prompt
        assert "under 15 chars" in prompt

    def test_rest_day(self):
        brief = Brief(mode="rest_day", focus="Rest Day", target="3 days straight. Time to recover",
                      rest_reason="recovery", nutrition=_NUTRITION)
        assert "REST DAY (3 days straight. Time to recover)" in self._prompt(brief)

    def test_post_workout_lists_prs(self):
        brief = Brief(
            mode="post_workout",
            focus="Push Day Complete",
            achievement="Bench Press 200x5",
            prs=[PersonalRecord(exercise="Bench Press", weight=200, reps=5)],
            nutrition=_NUTRITION,
        )
        prompt = self._prompt(brief, days_since_last=None)
        assert "WORKOUT COMPLETE (Push Day Complete)" in prompt
        assert "New PRs: Bench Press" in prompt
        assert "never trained" in prompt

    def test_no_macros_in_prompt(self):
        brief = Brief(mode="pre_workout", focus="Legs", target="Time to train", nutrition=_NUTRITION)
        prompt = self._prompt(brief)
        assert "2000cal" not in prompt
        assert "protein" not in prompt.lower()
