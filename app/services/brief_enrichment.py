"""
Brief Enrichment Service
========================
Optional stylistic rewrite of a brief's focus / target lines via the
Claude API.

The deterministic brief is always complete before this runs. The model
only ever sees facts the engine already computed and may only propose
nicer wording for two short display strings. Its reply is validated
strictly:

    - must contain a JSON object with string ``focus`` and ``target``
    - both non-empty and within their length budgets
    - the whole round trip must finish inside the timeout budget

Anything else (timeout, HTTP error, bad JSON, missing or oversize field)
is logged and discarded, and the caller keeps its deterministic text.
Macro numbers are never requested from, or read back from, the model.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError

from app.config import Settings, get_settings
from app.models.brief import Brief, StyledText

logger = logging.getLogger(__name__)


class BriefTextGenerator(Protocol):
    """Anything that turns a prompt into raw model text within a time budget."""

    timeout_seconds: float

    async def generate(self, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Claude-backed generator
# ---------------------------------------------------------------------------

class AnthropicBriefGenerator:
    """Calls the Anthropic Messages API and returns the concatenated text blocks."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._api_url = "https://api.anthropic.com/v1/messages"
        self.timeout_seconds = self._settings.enrichment_timeout_seconds

    async def generate(self, prompt: str) -> str:
        headers = {
            "x-api-key": self._settings.anthropic_api_key,
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        payload = {
            "model": self._settings.anthropic_model,
            "max_tokens": self._settings.anthropic_max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            response = await client.post(self._api_url, headers=headers, json=payload)
            response.raise_for_status()

        data = response.json()
        text_parts = [
            block["text"]
            for block in data.get("content", [])
            if block.get("type") == "text"
        ]
        return "\n".join(text_parts)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_prompt(
    brief: Brief,
    *,
    training_split: str,
    coaching_mode: str,
    weekly_count: int,
    days_per_week: int,
    days_since_last: Optional[int],
    focus_max: int,
    target_max: int,
) -> str:
    """Compact prompt embedding only facts the engine already decided."""
    if brief.mode == "rest_day":
        status = f"REST DAY ({brief.target})"
    elif brief.mode == "post_workout":
        status = f"WORKOUT COMPLETE ({brief.focus})"
    else:
        status = f"TRAINING DAY, suggested: {brief.focus}"

    lines = [
        "Rewrite two lines of a fitness app's daily brief in an upbeat coach voice.",
        "",
        "FACTS (do not change them):",
        f"- Today's status: {status}",
        f"- Focus: {brief.focus}",
        f"- Target: {brief.target or brief.achievement or 'none'}",
        f"- Training split: {training_split}",
        f"- Coaching mode: {coaching_mode}",
        f"- Workouts this week: {weekly_count}/{days_per_week}",
        f"- Days since last workout: {days_since_last if days_since_last is not None else 'never trained'}",
    ]
    if brief.prs:
        lines.append("- New PRs: " + ", ".join(p.exercise for p in brief.prs))
    lines += [
        "",
        "If the status is a training day, do NOT call it a rest day.",
        "Respond with ONLY this JSON, no other text:",
        f'{{"focus": "<under {focus_max} chars>", "target": "<under {target_max} chars>"}}',
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_styled_text(raw: str, focus_max: int, target_max: int) -> Optional[StyledText]:
    """Extract and validate the JSON fragment. Returns None if unusable."""
    if not raw:
        return None
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start == -1 or end <= start:
        logger.warning("Enrichment reply contained no JSON object")
        return None

    try:
        parsed = json.loads(raw[start:end])
        focus, target = parsed["focus"], parsed["target"]
        if not isinstance(focus, str) or not isinstance(target, str):
            raise TypeError("focus and target must be strings")
        styled = StyledText(focus=focus.strip(), target=target.strip())
    except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as exc:
        logger.warning("Discarding malformed enrichment reply: %s", exc)
        return None

    if len(styled.focus) > focus_max or len(styled.target) > target_max:
        logger.warning(
            "Discarding enrichment over length budget (focus=%d/%d, target=%d/%d)",
            len(styled.focus), focus_max, len(styled.target), target_max,
        )
        return None
    return styled


async def enrich(
    generator: BriefTextGenerator,
    prompt: str,
    focus_max: int,
    target_max: int,
) -> Optional[StyledText]:
    """Run the generator under its timeout. Never raises."""
    try:
        raw = await asyncio.wait_for(generator.generate(prompt), timeout=generator.timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("Brief enrichment timed out after %.1fs", generator.timeout_seconds)
        return None
    except Exception:
        logger.exception("Brief enrichment call failed")
        return None
    return parse_styled_text(raw, focus_max, target_max)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_generator: AnthropicBriefGenerator | None = None


def get_brief_generator() -> AnthropicBriefGenerator:
    global _default_generator
    if _default_generator is None:
        _default_generator = AnthropicBriefGenerator()
    return _default_generator
