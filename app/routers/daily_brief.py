"""
Daily Brief Router
==================
POST /api/v1/daily-brief         — Today's training brief for the caller.
POST /api/v1/daily-brief/events  — Tell the backend today's brief is stale.

The brief is computed at most once per user per calendar day under
normal use. The cache is keyed by (user, day) and is dropped when:
    - the client reports an event (a workout or meal was just saved),
    - the day rolls over,
    - the brief shape changes (BRIEF_VERSION bump),
    - the client asks for ``refresh``.

Auth is required. Beyond that the endpoint never fails on data problems:
missing or broken sub-queries degrade inside the service, and the caller
always gets either ``not_onboarded`` or a fully populated brief.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, status

from app.config import get_settings
from app.db.supabase import get_supabase_client
from app.models.brief import (
    BriefEventRequest,
    BriefEventResponse,
    DailyBriefRequest,
    DailyBriefResponse,
)
from app.services.brief_cache import get_brief_cache
from app.services.daily_brief import get_daily_brief_service
from app.services.dates import resolve_day, resolve_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/daily-brief", tags=["daily-brief"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_authenticated_user_id(authorization: str) -> str:
    """Verify the Supabase JWT and return the caller's user id.

    Raises HTTPException 401 if the token is invalid or missing. Runs
    before any brief computation.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Missing or invalid authorization header", "code": "auth_required"},
        )

    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Empty bearer token", "code": "auth_required"},
        )

    db = get_supabase_client()

    try:
        auth_response = db.auth.get_user(token)
    except Exception as exc:
        logger.warning("Auth token verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid or expired token", "code": "auth_invalid"},
        ) from exc

    if not auth_response or not auth_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "User not found for token", "code": "auth_invalid"},
        )

    return str(auth_response.user.id)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=DailyBriefResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Get today's training brief",
    description=(
        "Returns whether today is a training or rest day, the suggested "
        "workout, a target set to beat, today's PRs once a workout is logged, "
        "and nutrition goals. Cached per user per calendar day."
    ),
    responses={
        200: {"description": "Brief generated, or user not onboarded"},
        401: {"description": "Authentication required"},
    },
)
async def get_daily_brief(
    body: Optional[DailyBriefRequest] = None,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> DailyBriefResponse:
    """Return the cached brief for today, or compute and cache a fresh one."""
    user_id = _get_authenticated_user_id(authorization)
    body = body or DailyBriefRequest()
    settings = get_settings()

    now = datetime.now(timezone.utc)
    tz = resolve_timezone(body.timezone, fallback=settings.default_timezone)
    day = resolve_day(body.effective_date, now, tz)

    cache = get_brief_cache()
    if not body.refresh:
        cached = cache.get(user_id, day.today)
        if cached is not None:
            logger.debug("Serving cached brief for user %s on %s", user_id, day.today)
            return cached

    service = get_daily_brief_service()
    response = await service.generate(
        user_id,
        effective_date=day.today.isoformat(),
        timezone_name=body.timezone,
        now=now,
    )

    # not_onboarded is not cached: finishing onboarding must show a brief at once
    if response.status == "generated":
        cache.set(user_id, day.today, response)
    return response


@router.post(
    "/events",
    response_model=BriefEventResponse,
    status_code=status.HTTP_200_OK,
    summary="Invalidate today's brief",
    description=(
        "Called by the client after saving a workout, a meal, or training "
        "settings so the next brief request recomputes."
    ),
    responses={
        200: {"description": "Cache entry dropped (or none existed)"},
        401: {"description": "Authentication required"},
        422: {"description": "Unknown event"},
    },
)
async def post_brief_event(
    body: BriefEventRequest,
    authorization: str = Header(..., description="Bearer token from Supabase Auth"),
) -> BriefEventResponse:
    user_id = _get_authenticated_user_id(authorization)
    invalidated = get_brief_cache().invalidate(user_id, reason=body.event)
    return BriefEventResponse(invalidated=invalidated)
