"""
Date Resolver
=============
Turns "now" (or a debug override) into the calendar day the brief is for.

Everything downstream takes the resolved ``DayContext`` as a parameter and
never reads the clock itself, which is what makes a brief reproducible for
a given day.

All arithmetic is local-calendar arithmetic in the user's zone. Taking the
UTC date of an instant is the classic bug here: a set logged at 23:00 in
Chicago is already "tomorrow" in UTC.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayContext:
    today: date
    yesterday: date
    week_start: date  # Monday on or before today

    def in_current_week(self, day: date) -> bool:
        return self.week_start <= day <= self.today


def week_start_for(day: date) -> date:
    """Monday on or before *day*."""
    return day - timedelta(days=day.weekday())


def resolve_timezone(*candidates: Optional[str], fallback: str = "UTC") -> tzinfo:
    """Return the first candidate that names a real IANA zone."""
    for name in candidates:
        if not name:
            continue
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r, trying next candidate", name)
    try:
        return ZoneInfo(fallback)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Fallback timezone %r unknown, using UTC", fallback)
        return timezone.utc


def parse_override(value: Union[str, date, None]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` override. Invalid input is ignored, not raised."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.warning("Ignoring unparsable effective date override %r", value)
        return None


def resolve_day(
    effective_date: Union[str, date, None],
    now: datetime,
    tz: tzinfo,
) -> DayContext:
    """Resolve the brief's calendar day.

    *now* must be timezone-aware; a naive value is taken to be UTC.
    """
    today = parse_override(effective_date)
    if today is None:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        today = now.astimezone(tz).date()

    return DayContext(
        today=today,
        yesterday=today - timedelta(days=1),
        week_start=week_start_for(today),
    )


def to_local_day(value: Union[str, date, datetime], tz: tzinfo) -> date:
    """Map a stored date or timestamp to the user's local calendar day.

    Plain ``YYYY-MM-DD`` values are already calendar days and are returned
    as-is. Timestamps are converted to *tz* before taking the date; naive
    timestamps are treated as UTC, which is how Postgres hands them back.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        return value
    else:
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz).date()
