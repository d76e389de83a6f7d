"""Reward ledger: balances plus the append-only transaction history.

Every balance change goes through ``credit``/``debit``/``set_balance`` so
that each balance always equals the signed sum of its transactions.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from storra.db.models import ProfileAchievement, RewardProfile, RewardTransaction
from storra.exceptions import ConcurrentUpdate, StorraError
from storra.rewards.catalog import ACHIEVEMENTS
from storra.rewards.day_utils import utc_now
from storra.rewards.reward_types import (
    BALANCE_FIELDS,
    CurrencyReward,
    Direction,
    ItemReward,
    Reward,
    RewardType,
    TransactionSource,
)

logger = structlog.get_logger()


async def get_profile(db: AsyncSession, user_id: int) -> RewardProfile | None:
    """Fetch a user's reward profile without creating it."""
    result = await db.execute(select(RewardProfile).where(RewardProfile.user_id == user_id))
    return result.scalar_one_or_none()


def _new_profile(user_id: int, now: datetime) -> RewardProfile:
    profile = RewardProfile(user_id=user_id, created_at=now, updated_at=now)
    profile.achievements = [
        ProfileAchievement(achievement_id=a.achievement_id, claimed=False) for a in ACHIEVEMENTS
    ]
    return profile


async def get_or_create_profile(
    db: AsyncSession, user_id: int, now: datetime | None = None
) -> RewardProfile:
    """Get or lazily create a zero-valued profile seeded with the achievement catalog.

    Creation joins the caller's transaction. Mutating services call
    ``ensure_profile`` first, so this only creates inside a block when no
    profile existed a moment earlier.
    """
    profile = await get_profile(db, user_id)
    if profile is not None:
        return profile

    profile = _new_profile(user_id, now or utc_now())
    db.add(profile)
    await db.flush()
    logger.info("reward_profile_created", user_id=user_id, profile_id=profile.id)
    return profile


async def ensure_profile(
    db: AsyncSession, user_id: int, now: datetime | None = None
) -> RewardProfile:
    """Return the user's profile, committing a new one in its own transaction if needed.

    Two first requests from the same user may both insert; the loser hits
    the UNIQUE(user_id) constraint and re-reads the winner's row.
    """
    profile = await get_profile(db, user_id)
    if profile is not None:
        return profile

    profile = _new_profile(user_id, now or utc_now())
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_profile(db, user_id)
        if existing is None:
            raise
        return existing

    logger.info("reward_profile_created", user_id=user_id, profile_id=profile.id)
    return profile


def balances(profile: RewardProfile) -> dict[str, int]:
    """Current balances keyed by balance field name."""
    return {field: getattr(profile, field) for field in BALANCE_FIELDS.values()}


def _record(
    db: AsyncSession,
    profile: RewardProfile,
    direction: Direction,
    reward_type: RewardType,
    amount: int,
    source: TransactionSource,
    description: str,
    now: datetime,
) -> RewardTransaction:
    entry = RewardTransaction(
        profile_id=profile.id,
        direction=direction.value,
        reward_type=reward_type.value,
        amount=amount,
        source=source.value,
        description=description,
        created_at=now,
    )
    db.add(entry)
    profile.updated_at = now
    return entry


def credit(
    db: AsyncSession,
    profile: RewardProfile,
    reward: Reward,
    source: TransactionSource,
    now: datetime,
    description: str | None = None,
) -> RewardTransaction:
    """Apply a reward to the profile and append one ``earn`` entry."""
    if isinstance(reward, CurrencyReward):
        field = BALANCE_FIELDS[reward.type]
        setattr(profile, field, getattr(profile, field) + reward.amount)
        return _record(
            db, profile, Direction.EARN, reward.type, reward.amount, source,
            description or reward.description, now,
        )
    if isinstance(reward, ItemReward):
        return _record(
            db, profile, Direction.EARN, RewardType.ITEM, 0, source,
            description or reward.description or reward.name, now,
        )
    raise TypeError(f"Unsupported reward variant: {type(reward).__name__}")


def debit(
    db: AsyncSession,
    profile: RewardProfile,
    reward_type: RewardType,
    amount: int,
    source: TransactionSource,
    description: str,
    now: datetime,
) -> RewardTransaction:
    """Remove ``amount`` from a balance and append one ``spend`` entry."""
    field = BALANCE_FIELDS[reward_type]
    current = getattr(profile, field)
    if amount > current:
        raise ValueError(f"Insufficient {field}: {current} < {amount}")
    setattr(profile, field, current - amount)
    return _record(db, profile, Direction.SPEND, reward_type, amount, source, description, now)


def set_balance(
    db: AsyncSession,
    profile: RewardProfile,
    reward_type: RewardType,
    target: int,
    source: TransactionSource,
    description: str,
    now: datetime,
) -> RewardTransaction | None:
    """Move a balance to ``target``, recording the signed delta. No-op when already there."""
    field = BALANCE_FIELDS[reward_type]
    delta = target - getattr(profile, field)
    if delta > 0:
        return credit(db, profile, CurrencyReward(reward_type, delta, description), source, now)
    if delta < 0:
        return debit(db, profile, reward_type, -delta, source, description, now)
    return None


async def count_transactions(
    db: AsyncSession,
    profile_id: int,
    source: TransactionSource,
    direction: Direction | None = None,
) -> int:
    """Count ledger entries from one source."""
    stmt = (
        select(func.count())
        .select_from(RewardTransaction)
        .where(RewardTransaction.profile_id == profile_id, RewardTransaction.source == source.value)
    )
    if direction is not None:
        stmt = stmt.where(RewardTransaction.direction == direction.value)
    result = await db.execute(stmt)
    return result.scalar_one()


async def ledger_balances(db: AsyncSession, profile_id: int) -> dict[str, int]:
    """Recompute balances from the transaction history alone."""
    signed = case(
        (RewardTransaction.direction == Direction.SPEND.value, -RewardTransaction.amount),
        else_=RewardTransaction.amount,
    )
    result = await db.execute(
        select(RewardTransaction.reward_type, func.coalesce(func.sum(signed), 0))
        .where(RewardTransaction.profile_id == profile_id)
        .group_by(RewardTransaction.reward_type)
    )
    sums = {row[0]: int(row[1]) for row in result}
    return {field: sums.get(rtype.value, 0) for rtype, field in BALANCE_FIELDS.items()}


async def list_transactions(
    db: AsyncSession, profile_id: int, offset: int = 0, limit: int = 50
) -> tuple[list[RewardTransaction], int]:
    """Newest-first page of the ledger plus the total count."""
    total_result = await db.execute(
        select(func.count()).select_from(RewardTransaction).where(RewardTransaction.profile_id == profile_id)
    )
    result = await db.execute(
        select(RewardTransaction)
        .where(RewardTransaction.profile_id == profile_id)
        .order_by(RewardTransaction.created_at.desc(), RewardTransaction.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total_result.scalar_one()


@asynccontextmanager
async def atomic_update(
    db: AsyncSession, on_integrity_error: StorraError | None = None
) -> AsyncIterator[None]:
    """Run a read-decide-write block as one transaction.

    Commits on success. Any domain error, version conflict or constraint
    violation rolls the whole block back, so partial effects are never
    persisted.
    """
    try:
        yield
        await db.commit()
    except StorraError:
        await db.rollback()
        raise
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("reward_version_conflict", error=str(exc))
        raise ConcurrentUpdate() from exc
    except IntegrityError as exc:
        await db.rollback()
        if on_integrity_error is not None:
            raise on_integrity_error from exc
        raise
    except BaseException:
        await db.rollback()
        raise
