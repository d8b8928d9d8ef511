"""
Brief Cache
===========
In-process cache of generated briefs keyed by (user_id, calendar day).

Advisory only. It saves recomputing the same brief on every page load,
but nothing depends on it for correctness: two concurrent misses simply
compute the same brief twice, because the engine is a pure function of
the user's data and the day.

An entry is unusable when:
    - it belongs to another calendar day (rollover drops it),
    - it was produced by an older ``BRIEF_VERSION``,
    - it was explicitly invalidated (e.g. a workout was just saved).
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Optional

from app.models.brief import BRIEF_VERSION, DailyBriefResponse

logger = logging.getLogger(__name__)


class BriefCache:
    def __init__(self) -> None:
        self._entries: dict[str, tuple[date, DailyBriefResponse]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, day: date) -> Optional[DailyBriefResponse]:
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            cached_day, response = entry
            if cached_day != day:
                # Calendar rolled over (or a debug date moved): yesterday's
                # brief is never shown as today's.
                del self._entries[user_id]
                logger.debug("Dropped brief for user %s from %s (now %s)", user_id, cached_day, day)
                return None
            if response.version != BRIEF_VERSION:
                del self._entries[user_id]
                logger.debug("Dropped brief for user %s with stale version %d", user_id, response.version)
                return None
            return response

    def set(self, user_id: str, day: date, response: DailyBriefResponse) -> None:
        with self._lock:
            self._entries[user_id] = (day, response)

    def invalidate(self, user_id: str, reason: str = "manual") -> bool:
        """Forget the user's cached brief. Returns True if one was cached."""
        with self._lock:
            removed = self._entries.pop(user_id, None) is not None
        logger.info("Invalidated daily brief cache for user %s (%s, hit=%s)", user_id, reason, removed)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_default_cache: BriefCache | None = None


def get_brief_cache() -> BriefCache:
    global _default_cache
    if _default_cache is None:
        _default_cache = BriefCache()
    return _default_cache
