"""Daily login rewards on the 30-day calendar schedule."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storra.db.models import DailyRewardClaim, RewardProfile
from storra.exceptions import AlreadyClaimedToday
from storra.rewards.achievements import evaluate_achievements
from storra.rewards.catalog import AchievementTrigger, reward_for_day
from storra.rewards.day_utils import calendar_date, days_in_month, utc_now
from storra.rewards.events import publish_reward_event, publish_unlocks
from storra.rewards.ledger import atomic_update, balances, credit, ensure_profile, get_or_create_profile
from storra.rewards.reward_types import TransactionSource
from storra.rewards.spin_wheel import refresh_before_grant
from storra.rewards.streak import compute_streak, longest_streak

logger = structlog.get_logger()


async def find_claim_for_date(db: AsyncSession, profile_id: int, now: datetime) -> DailyRewardClaim | None:
    """Return the claim recorded on ``now``'s calendar date, if any."""
    result = await db.execute(
        select(DailyRewardClaim).where(
            DailyRewardClaim.profile_id == profile_id,
            DailyRewardClaim.claim_date == calendar_date(now),
            DailyRewardClaim.claimed.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def claim_daily_reward(
    db: AsyncSession,
    redis: object,
    user_id: int,
    now: datetime | None = None,
) -> dict:
    """Claim today's calendar reward.

    Eligibility check, streak update, balance credit, claim log and
    achievement unlocks commit together or not at all. The UNIQUE
    (profile_id, claim_date) constraint and the profile version column both
    reject a racing second claim.
    """
    now = now or utc_now()
    today = calendar_date(now)

    await ensure_profile(db, user_id, now)
    async with atomic_update(db, on_integrity_error=AlreadyClaimedToday()):
        profile = await get_or_create_profile(db, user_id, now)

        if await find_claim_for_date(db, profile.id, now) is not None:
            raise AlreadyClaimedToday()

        first_login = profile.last_login_date is None
        new_streak = compute_streak(now, profile.last_login_date, profile.current_streak)

        bundle = reward_for_day(today.day)
        refresh_before_grant(db, profile, bundle, now)
        for reward in bundle:
            credit(db, profile, reward, TransactionSource.DAILY_LOGIN, now)

        db.add(DailyRewardClaim(
            profile_id=profile.id,
            claim_date=today,
            day=today.day,
            month=today.month,
            year=today.year,
            rewards=[r.to_dict() for r in bundle],
            claimed=True,
            claimed_at=now,
        ))

        profile.current_streak = new_streak
        profile.longest_streak = longest_streak(profile.longest_streak, new_streak)
        profile.last_login_date = now
        profile.updated_at = now

        unlocked = evaluate_achievements(profile, AchievementTrigger.LOGIN_STREAK, new_streak, now)
        if first_login:
            unlocked += evaluate_achievements(profile, AchievementTrigger.FIRST_LOGIN, 1, now)

        await db.flush()

    logger.info(
        "daily_reward_claimed",
        user_id=user_id,
        day=today.day,
        streak=new_streak,
        rewards=len(bundle),
        unlocked=unlocked,
    )
    await publish_reward_event(
        redis, "daily_reward_claimed", user_id,
        day=today.day, streak=new_streak, unlocked=unlocked,
    )
    await publish_unlocks(redis, user_id, unlocked)
    return {
        "rewards": [r.to_dict() for r in bundle],
        "streak": profile.current_streak,
        "longest_streak": profile.longest_streak,
        "balances": balances(profile),
        "unlocked_achievements": unlocked,
    }


async def get_daily_info(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """Whether today is already claimed, plus streak and balances."""
    now = now or utc_now()
    profile = await ensure_profile(db, user_id, now)
    claimed_today = await find_claim_for_date(db, profile.id, now) is not None
    await db.commit()
    return {
        "claimed_today": claimed_today,
        "streak": profile.current_streak,
        "longest_streak": profile.longest_streak,
        "balances": balances(profile),
    }


def build_calendar(profile: RewardProfile | None, claims: list[DailyRewardClaim], now: datetime) -> dict:
    """Month view: every day's bundle with its claim status."""
    today = calendar_date(now)
    claimed_by_day = {c.day: c for c in claims if c.year == today.year and c.month == today.month}

    days = []
    for day in range(1, days_in_month(today.year, today.month) + 1):
        claim = claimed_by_day.get(day)
        days.append({
            "day": day,
            "rewards": [r.to_dict() for r in reward_for_day(day)],
            "claimed": claim is not None,
            "claimed_at": claim.claimed_at if claim else None,
        })

    return {
        "month": today.month,
        "year": today.year,
        "calendar": days,
        "current_streak": profile.current_streak if profile else 0,
    }


async def get_calendar(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """Current month's calendar for a user."""
    now = now or utc_now()
    today = calendar_date(now)
    profile = await ensure_profile(db, user_id, now)
    result = await db.execute(
        select(DailyRewardClaim)
        .where(
            DailyRewardClaim.profile_id == profile.id,
            DailyRewardClaim.year == today.year,
            DailyRewardClaim.month == today.month,
        )
        .order_by(DailyRewardClaim.day)
    )
    claims = list(result.scalars().all())
    await db.commit()
    return build_calendar(profile, claims, now)
