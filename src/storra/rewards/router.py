"""Reward API endpoints: dashboard, daily login, achievements, ledger and spin wheel."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storra.auth.dependencies import get_current_user
from storra.config import get_settings
from storra.database import get_session
from storra.db.models import User
from storra.redis_client import get_optional_redis
from storra.rewards import daily_service, spin_wheel
from storra.rewards.achievements import claim_achievement, list_achievements
from storra.rewards.ledger import balances, ensure_profile, list_transactions
from storra.rewards.schemas import (
    AchievementClaimResponse,
    AchievementResponse,
    AchievementsResponse,
    CalendarResponse,
    DailyClaimResponse,
    DailyInfoResponse,
    RewardsDashboardResponse,
    SpinPreviewResponse,
    SpinResponse,
    TransactionEntry,
    TransactionsResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Rewards"])


# ── Rewards dashboard ──


@router.get("/rewards", response_model=RewardsDashboardResponse)
async def get_rewards(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Balances, streaks, achievements and the most recent ledger entries."""
    profile = await ensure_profile(db, user.id)
    recent, _ = await list_transactions(db, profile.id, limit=get_settings().recent_transactions_limit)
    await db.commit()

    return RewardsDashboardResponse(
        balances=balances(profile),
        current_streak=profile.current_streak,
        longest_streak=profile.longest_streak,
        last_login_date=profile.last_login_date,
        quizzes_completed=profile.quizzes_completed,
        perfect_scores=profile.perfect_scores,
        achievements=[AchievementResponse.model_validate(a) for a in list_achievements(profile)],
        recent_transactions=[TransactionEntry.model_validate(t, from_attributes=True) for t in recent],
    )


@router.get("/rewards/transactions", response_model=TransactionsResponse)
async def get_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Paginated reward ledger, newest first."""
    profile = await ensure_profile(db, user.id)
    entries, total = await list_transactions(db, profile.id, offset=(page - 1) * per_page, limit=per_page)
    await db.commit()

    return TransactionsResponse(
        entries=[TransactionEntry.model_validate(t, from_attributes=True) for t in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


# ── Daily login ──


@router.post("/rewards/daily/claim", response_model=DailyClaimResponse)
async def claim_daily(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Claim today's calendar reward."""
    result = await daily_service.claim_daily_reward(db, redis, user.id)
    return DailyClaimResponse.model_validate(result)


@router.get("/rewards/daily/info", response_model=DailyInfoResponse)
async def daily_info(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Whether today's reward has been claimed, with streak and balances."""
    return DailyInfoResponse.model_validate(await daily_service.get_daily_info(db, user.id))


@router.get("/rewards/daily/calendar", response_model=CalendarResponse)
async def daily_calendar(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """This month's reward calendar with claim status per day."""
    return CalendarResponse.model_validate(await daily_service.get_calendar(db, user.id))


# ── Achievements ──


@router.get("/rewards/achievements", response_model=AchievementsResponse)
async def get_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    profile = await ensure_profile(db, user.id)
    await db.commit()
    return AchievementsResponse(
        achievements=[AchievementResponse.model_validate(a) for a in list_achievements(profile)],
    )


@router.post("/rewards/achievements/{achievement_id}/claim", response_model=AchievementClaimResponse)
async def claim(
    achievement_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    """Grant an unlocked achievement's reward."""
    result = await claim_achievement(db, redis, user.id, achievement_id)
    return AchievementClaimResponse.model_validate(result)


# ── Spin the wheel ──


@router.post("/spin-wheel/spin", response_model=SpinResponse)
async def spin(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
):
    return SpinResponse.model_validate(await spin_wheel.spin(db, redis, user.id))


@router.get("/spin-wheel/preview", response_model=SpinPreviewResponse)
async def spin_preview(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Curated wheel preview. Read-only."""
    return SpinPreviewResponse.model_validate(await spin_wheel.preview(db, user.id))
