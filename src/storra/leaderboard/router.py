"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storra.auth.dependencies import get_current_user
from storra.config import get_settings
from storra.database import get_session
from storra.db.models import User
from storra.leaderboard.schemas import LeaderboardEntry, LeaderboardResponse
from storra.leaderboard.service import get_leaderboard, get_user_rank

router = APIRouter(prefix="/api/v1/leaderboard", tags=["Leaderboard"])

_settings = get_settings()


@router.get("", response_model=LeaderboardResponse)
async def leaderboard(
    page: int = Query(1, ge=1),
    limit: int = Query(_settings.leaderboard_default_limit, ge=1, le=_settings.leaderboard_max_limit),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Users ranked by total quiz points."""
    return LeaderboardResponse.model_validate(await get_leaderboard(db, page=page, limit=limit))


@router.get("/me", response_model=LeaderboardEntry)
async def my_rank(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return LeaderboardEntry.model_validate(await get_user_rank(db, user.id))
