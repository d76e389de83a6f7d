"""Reward services against the database: daily claims, achievements, spins, ledger."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storra.db.models import DailyRewardClaim, RewardProfile, RewardTransaction
from storra.exceptions import (
    AchievementNotClaimable,
    AllowanceExhausted,
    AlreadyClaimedToday,
    ConcurrentUpdate,
    NotFound,
)
from storra.rewards.achievements import claim_achievement
from storra.rewards.daily_service import claim_daily_reward, get_calendar, get_daily_info
from storra.rewards import ledger
from storra.rewards.ledger import balances, ensure_profile, get_profile, ledger_balances
from storra.rewards.spin_wheel import preview, spin

from conftest import FirstBucketRandom

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 5, 14, 10, 0, tzinfo=timezone.utc)
YESTERDAY = NOW - timedelta(days=1)


async def _fresh_profile(db: AsyncSession, user_id: int) -> RewardProfile:
    db.expire_all()
    profile = await get_profile(db, user_id)
    assert profile is not None
    return profile


async def _count(db: AsyncSession, model, *where) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


class TestDailyClaim:
    """Calendar-scheme daily claims."""

    async def test_claim_credits_day_bundle(self, db_session, user):
        uid = user.id
        result = await claim_daily_reward(db_session, None, uid, now=NOW)

        assert [(r["type"], r["amount"]) for r in result["rewards"]] == [("coins", 150), ("points", 50)]
        profile = await _fresh_profile(db_session, uid)
        assert (profile.coins, profile.points) == (150, 50)
        assert profile.current_streak == 1
        assert profile.longest_streak == 1
        assert profile.last_login_date is not None

    async def test_second_claim_same_day_rejected_without_side_effects(self, db_session, user):
        uid = user.id
        await claim_daily_reward(db_session, None, uid, now=NOW)
        before = balances(await _fresh_profile(db_session, uid))

        with pytest.raises(AlreadyClaimedToday):
            await claim_daily_reward(db_session, None, uid, now=NOW + timedelta(hours=3))

        profile = await _fresh_profile(db_session, uid)
        assert balances(profile) == before
        assert profile.current_streak == 1
        assert await _count(db_session, DailyRewardClaim, DailyRewardClaim.profile_id == profile.id) == 1

    async def test_consecutive_days_build_streak(self, db_session, user):
        uid = user.id
        await claim_daily_reward(db_session, None, uid, now=YESTERDAY)
        result = await claim_daily_reward(db_session, None, uid, now=NOW)
        assert result["streak"] == 2
        assert result["longest_streak"] == 2

    async def test_gap_resets_streak_but_keeps_longest(self, db_session, user):
        uid = user.id
        for offset in (5, 4, 3):
            await claim_daily_reward(db_session, None, uid, now=NOW - timedelta(days=offset))
        result = await claim_daily_reward(db_session, None, uid, now=NOW)
        assert result["streak"] == 1
        assert result["longest_streak"] == 3

    async def test_info_and_calendar_reflect_claim(self, db_session, user):
        uid = user.id
        info = await get_daily_info(db_session, uid, now=NOW)
        assert info["claimed_today"] is False

        await claim_daily_reward(db_session, None, uid, now=NOW)

        info = await get_daily_info(db_session, uid, now=NOW)
        assert info["claimed_today"] is True
        calendar = await get_calendar(db_session, uid, now=NOW)
        claimed_days = [d["day"] for d in calendar["calendar"] if d["claimed"]]
        assert claimed_days == [NOW.day]

    async def test_concurrent_writer_surfaces_conflict_and_rolls_back(self, db_session, user):
        """A version bump between read and write rejects the claim as a whole."""
        uid = user.id
        await get_daily_info(db_session, uid, now=NOW)
        profile = await get_profile(db_session, uid)
        profile_id = profile.id

        await db_session.execute(
            update(RewardProfile)
            .where(RewardProfile.id == profile_id)
            .values(version=RewardProfile.version + 1)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConcurrentUpdate):
            await claim_daily_reward(db_session, None, uid, now=NOW)

        db_session.expire_all()
        assert await _count(db_session, DailyRewardClaim, DailyRewardClaim.profile_id == profile_id) == 0
        assert await _count(db_session, RewardTransaction, RewardTransaction.profile_id == profile_id) == 0


class TestAchievements:
    """Unlock on progress, grant on claim."""

    async def test_first_claim_unlocks_first_login_without_granting(self, db_session, user):
        uid = user.id
        result = await claim_daily_reward(db_session, None, uid, now=NOW)
        assert "first_login" in result["unlocked_achievements"]

        coins_after_daily = (await _fresh_profile(db_session, uid)).coins

        claimed = await claim_achievement(db_session, None, uid, "first_login", now=NOW)
        assert claimed["achievement"]["claimed"] is True
        assert claimed["balances"]["coins"] == coins_after_daily + 50

    async def test_claiming_twice_rejected(self, db_session, user):
        uid = user.id
        await claim_daily_reward(db_session, None, uid, now=NOW)
        await claim_achievement(db_session, None, uid, "first_login", now=NOW)

        with pytest.raises(AchievementNotClaimable):
            await claim_achievement(db_session, None, uid, "first_login", now=NOW)

        profile = await _fresh_profile(db_session, uid)
        assert profile.coins == 150 + 50
        assert await ledger_balances(db_session, profile.id) == balances(profile)

    async def test_locked_achievement_not_claimable(self, db_session, user):
        with pytest.raises(AchievementNotClaimable):
            await claim_achievement(db_session, None, user.id, "7_day_streak", now=NOW)

    async def test_unknown_achievement(self, db_session, user):
        with pytest.raises(NotFound):
            await claim_achievement(db_session, None, user.id, "does_not_exist", now=NOW)

    async def test_seven_day_streak_unlocks_on_day_seven_only(self, db_session, user):
        uid = user.id
        unlocked: list[str] = []
        for offset in range(6, -1, -1):
            result = await claim_daily_reward(db_session, None, uid, now=NOW - timedelta(days=offset))
            unlocked += result["unlocked_achievements"]
            if offset > 0:
                assert "7_day_streak" not in result["unlocked_achievements"]

        assert unlocked.count("7_day_streak") == 1
        claimed = await claim_achievement(db_session, None, uid, "7_day_streak", now=NOW)
        assert claimed["achievement"]["reward_type"] == "spin_chance"


class TestSpinWheel:
    """Allowance reset, consumption and throttle."""

    async def test_first_spin_of_day_resets_then_consumes(self, db_session, user):
        uid = user.id
        for _ in range(3):
            await spin(db_session, None, uid, now=YESTERDAY, rng=FirstBucketRandom())
        assert (await _fresh_profile(db_session, uid)).spin_chances == 0

        result = await spin(db_session, None, uid, now=NOW, rng=FirstBucketRandom())

        assert result["spin_chances"] == 2
        assert result["reward"]["name"] == "10 Coins"

    async def test_exhausted_allowance_rejected(self, db_session, user):
        uid = user.id
        for _ in range(3):
            await spin(db_session, None, uid, now=NOW, rng=FirstBucketRandom())

        with pytest.raises(AllowanceExhausted):
            await spin(db_session, None, uid, now=NOW + timedelta(minutes=1), rng=FirstBucketRandom())

        profile = await _fresh_profile(db_session, uid)
        assert profile.spin_chances == 0
        assert profile.coins == 30

    async def test_daily_spin_bonus_survives_first_spin_of_day(self, db_session, user):
        uid = user.id
        day_seven = datetime(2026, 5, 7, 10, 0, tzinfo=timezone.utc)
        for _ in range(3):
            await spin(db_session, None, uid, now=day_seven - timedelta(days=1), rng=FirstBucketRandom())

        claimed = await claim_daily_reward(db_session, None, uid, now=day_seven)
        assert claimed["balances"]["spin_chances"] == 4

        result = await spin(db_session, None, uid, now=day_seven + timedelta(minutes=5), rng=FirstBucketRandom())

        assert result["spin_chances"] == 3
        profile = await _fresh_profile(db_session, uid)
        assert await ledger_balances(db_session, profile.id) == balances(profile)

    async def test_achievement_spin_reward_survives_first_spin_of_day(self, db_session, user):
        uid = user.id
        for offset in range(7, 0, -1):
            await claim_daily_reward(db_session, None, uid, now=NOW - timedelta(days=offset))
        await db_session.execute(
            update(RewardProfile)
            .where(RewardProfile.user_id == uid)
            .values(spin_chances=0, last_spin_reset_date=YESTERDAY, version=RewardProfile.version + 1)
            .execution_options(synchronize_session=False)
        )
        await db_session.commit()
        db_session.expire_all()

        claimed = await claim_achievement(db_session, None, uid, "7_day_streak", now=NOW)
        assert claimed["balances"]["spin_chances"] == 4

        result = await spin(db_session, None, uid, now=NOW + timedelta(minutes=5), rng=FirstBucketRandom())
        assert result["spin_chances"] == 3

    async def test_throttle_after_ten_recorded_spins(self, db_session, user):
        uid = user.id
        rng = FirstBucketRandom()
        throttled = []
        for day in range(4):
            for _ in range(3):
                result = await spin(db_session, None, uid, now=NOW + timedelta(days=day), rng=rng)
                throttled.append(result["throttled"])

        assert throttled[:10] == [False] * 10
        assert throttled[10:] == [True, True]

    async def test_preview_is_read_only(self, db_session, user):
        uid = user.id
        for _ in range(3):
            await spin(db_session, None, uid, now=YESTERDAY, rng=FirstBucketRandom())
        profile = await _fresh_profile(db_session, uid)
        transactions_before = await _count(db_session, RewardTransaction, RewardTransaction.profile_id == profile.id)

        result = await preview(db_session, uid, now=NOW, rng=random.Random(4))

        assert result["spin_chances"] == 3
        profile = await _fresh_profile(db_session, uid)
        assert profile.spin_chances == 0
        assert await _count(
            db_session, RewardTransaction, RewardTransaction.profile_id == profile.id
        ) == transactions_before

    async def test_preview_for_new_user_creates_nothing(self, db_session, user):
        result = await preview(db_session, user.id, now=NOW)
        assert result["spin_chances"] == 3
        assert await get_profile(db_session, user.id) is None


class TestLedgerInvariant:
    async def test_balances_equal_signed_history(self, db_session, user):
        uid = user.id
        for offset in range(6, -1, -1):
            await claim_daily_reward(db_session, None, uid, now=NOW - timedelta(days=offset))
        await claim_achievement(db_session, None, uid, "first_login", now=NOW)
        await claim_achievement(db_session, None, uid, "7_day_streak", now=NOW)
        for minutes in range(3):
            await spin(db_session, None, uid, now=NOW + timedelta(minutes=minutes), rng=random.Random(minutes))

        profile = await _fresh_profile(db_session, uid)
        assert await ledger_balances(db_session, profile.id) == balances(profile)


def _miss_first_lookup(monkeypatch) -> None:
    """Make the next profile lookup miss, as if a racing request had not committed yet."""
    real_get_profile = ledger.get_profile
    calls = 0

    async def lookup(db, user_id):
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await real_get_profile(db, user_id)

    monkeypatch.setattr(ledger, "get_profile", lookup)


class TestProfileCreationRace:
    """A request that loses the first-touch insert race re-reads the winner's profile."""

    async def test_ensure_profile_returns_existing_row(self, db_session, user, monkeypatch):
        uid = user.id
        winner_id = (await ensure_profile(db_session, uid, NOW)).id
        _miss_first_lookup(monkeypatch)

        profile = await ensure_profile(db_session, uid, NOW)

        assert profile.id == winner_id
        assert await _count(db_session, RewardProfile, RewardProfile.user_id == uid) == 1

    async def test_spin_after_lost_race(self, db_session, user, monkeypatch):
        uid = user.id
        await ensure_profile(db_session, uid, NOW)
        _miss_first_lookup(monkeypatch)

        result = await spin(db_session, None, uid, now=NOW, rng=FirstBucketRandom())

        assert result["spin_chances"] == 2

    async def test_daily_claim_after_lost_race_is_not_a_double_claim(self, db_session, user, monkeypatch):
        uid = user.id
        await ensure_profile(db_session, uid, NOW)
        _miss_first_lookup(monkeypatch)

        result = await claim_daily_reward(db_session, None, uid, now=NOW)

        assert result["streak"] == 1
        assert await _count(db_session, DailyRewardClaim) == 1
