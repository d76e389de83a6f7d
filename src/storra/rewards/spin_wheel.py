"""Spin the wheel: daily allowance, weighted draw and the anti-abuse throttle."""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storra.config import get_settings
from storra.db.models import RewardProfile
from storra.exceptions import AllowanceExhausted
from storra.rewards.day_utils import is_same_day, utc_now
from storra.rewards.events import publish_reward_event
from storra.rewards.ledger import (
    atomic_update,
    balances,
    count_transactions,
    credit,
    debit,
    ensure_profile,
    get_or_create_profile,
    get_profile,
    set_balance,
)
from storra.rewards.reward_types import (
    CurrencyReward,
    Direction,
    ItemReward,
    Reward,
    RewardType,
    TransactionSource,
)

logger = structlog.get_logger()

_rng = random.SystemRandom()


@dataclass(frozen=True)
class WheelEntry:
    name: str
    reward: Reward
    weight: float

    @property
    def type(self) -> RewardType:
        return self.reward.type

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.reward.type.value,
            "amount": self.reward.amount if isinstance(self.reward, CurrencyReward) else None,
            "weight": self.weight,
        }


def _coins(amount: int, weight: float) -> WheelEntry:
    name = f"{amount} Coins"
    return WheelEntry(name, CurrencyReward(RewardType.COINS, amount, name), weight)


def _diamonds(amount: int, weight: float) -> WheelEntry:
    name = "1 Diamond" if amount == 1 else f"{amount} Diamonds"
    return WheelEntry(name, CurrencyReward(RewardType.DIAMOND, amount, name), weight)


def _item(name: str, weight: float) -> WheelEntry:
    return WheelEntry(name, ItemReward(name), weight)


FREE_SPIN = WheelEntry("Free Spin", CurrencyReward(RewardType.SPIN_CHANCE, 1, "Free Spin"), 8)

SPIN_REWARDS: tuple[WheelEntry, ...] = (
    _coins(10, 60),
    _coins(20, 40),
    _coins(50, 20),
    _diamonds(1, 15),
    _diamonds(5, 5),
    FREE_SPIN,
    _item("Storra Sticker", 3),
    _item("Storra Shirt", 1),
    _item("₦100 Airtime", 0.5),
)

# Throttled users draw uniformly from this table only
SMALL_REWARDS: tuple[WheelEntry, ...] = (
    _coins(10, 70),
    _coins(20, 30),
)

RARE_POOL: tuple[WheelEntry, ...] = tuple(
    e for e in SPIN_REWARDS if e is not FREE_SPIN and e.weight < FREE_SPIN.weight
)


def pick_weighted(entries: Sequence[WheelEntry], rng: random.Random | None = None) -> WheelEntry:
    """Weighted-bucket draw: ``P(entry) = weight / sum(weights)``.

    Table order only decides where the scan stops, not the probabilities.
    """
    if not entries:
        raise ValueError("cannot draw from an empty table")
    rng = rng or _rng
    total = sum(e.weight for e in entries)
    remainder = rng.uniform(0, total)
    for entry in entries:
        remainder -= entry.weight
        if remainder <= 0:
            return entry
    # Float rounding can leave a tiny positive remainder at r == total
    return entries[-1]


def draw_reward(previous_spins: int, rng: random.Random | None = None) -> tuple[WheelEntry, bool]:
    """Pick the reward for a spin; returns ``(entry, throttled)``.

    Once a user has ``spin_throttle_threshold`` recorded wins, draws come
    uniformly from ``SMALL_REWARDS`` instead of the full wheel.
    """
    rng = rng or _rng
    if previous_spins >= get_settings().spin_throttle_threshold:
        return rng.choice(SMALL_REWARDS), True
    return pick_weighted(SPIN_REWARDS, rng), False


def needs_allowance_reset(profile: RewardProfile, now: datetime) -> bool:
    """The allowance is replenished once per calendar day."""
    return not is_same_day(profile.last_spin_reset_date, now)


def refresh_allowance(db: AsyncSession, profile: RewardProfile, now: datetime) -> bool:
    """Reset spin chances to the daily allotment on the first touch of a new day."""
    if not needs_allowance_reset(profile, now):
        return False
    set_balance(
        db, profile, RewardType.SPIN_CHANCE, get_settings().spin_daily_allotment,
        TransactionSource.SPIN_RESET, "Daily spin allowance", now,
    )
    profile.last_spin_reset_date = now
    profile.updated_at = now
    return True


def refresh_before_grant(
    db: AsyncSession, profile: RewardProfile, rewards: Iterable[Reward], now: datetime
) -> bool:
    """Apply today's allowance reset ahead of a spin-chance grant.

    A reset that ran after the grant would overwrite it with the allotment.
    """
    if any(r.type is RewardType.SPIN_CHANCE for r in rewards):
        return refresh_allowance(db, profile, now)
    return False


async def spin(
    db: AsyncSession,
    redis: object,
    user_id: int,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> dict:
    """Consume one spin chance and apply the drawn reward."""
    now = now or utc_now()
    await ensure_profile(db, user_id, now)

    async with atomic_update(db):
        profile = await get_or_create_profile(db, user_id, now)
        refresh_allowance(db, profile, now)

        if profile.spin_chances <= 0:
            raise AllowanceExhausted()

        # The spin is spent before the reward is resolved
        debit(db, profile, RewardType.SPIN_CHANCE, 1, TransactionSource.SPIN_COST, "Spin the wheel", now)

        previous_spins = await count_transactions(
            db, profile.id, TransactionSource.SPIN_WHEEL, Direction.EARN
        )
        entry, throttled = draw_reward(previous_spins, rng)
        credit(db, profile, entry.reward, TransactionSource.SPIN_WHEEL, now, f"Won: {entry.name}")
        await db.flush()

    logger.info(
        "spin_completed",
        user_id=user_id,
        reward=entry.name,
        reward_type=entry.type.value,
        throttled=throttled,
        spins_before=previous_spins,
        spin_chances=profile.spin_chances,
    )
    await publish_reward_event(
        redis, "spin_completed", user_id, reward=entry.to_dict(), throttled=throttled,
    )
    return {
        "reward": entry.to_dict(),
        "throttled": throttled,
        "balances": balances(profile),
        "spin_chances": profile.spin_chances,
    }


def build_preview(rng: random.Random | None = None) -> list[dict]:
    """Curated wheel preview: common coin prizes, the free spin and one mystery prize."""
    rng = rng or _rng
    coins = sorted(
        (e for e in SPIN_REWARDS if e.type == RewardType.COINS),
        key=lambda e: e.weight,
        reverse=True,
    )[:3]
    mystery = rng.choice(RARE_POOL)

    items = [{**e.to_dict(), "mystery": False} for e in coins]
    items.append({**FREE_SPIN.to_dict(), "mystery": False})
    items.append({**mystery.to_dict(), "mystery": True})
    return items


async def preview(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> dict:
    """Read-only: never resets, decrements or creates anything."""
    now = now or utc_now()
    profile = await get_profile(db, user_id)
    if profile is None or needs_allowance_reset(profile, now):
        spin_chances = get_settings().spin_daily_allotment
    else:
        spin_chances = profile.spin_chances

    return {"rewards": build_preview(rng), "spin_chances": spin_chances}
