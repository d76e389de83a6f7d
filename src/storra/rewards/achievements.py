"""Achievement engine: unlock on progress events, grant on explicit claim."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from storra.db.models import ProfileAchievement, RewardProfile
from storra.exceptions import AchievementNotClaimable, NotFound
from storra.rewards.catalog import ACHIEVEMENTS, ACHIEVEMENTS_BY_ID, AchievementDefinition, AchievementTrigger
from storra.rewards.day_utils import utc_now
from storra.rewards.events import publish_reward_event
from storra.rewards.ledger import atomic_update, balances, credit, ensure_profile, get_or_create_profile
from storra.rewards.reward_types import TransactionSource
from storra.rewards.spin_wheel import refresh_before_grant

logger = structlog.get_logger()


def _states_by_id(profile: RewardProfile) -> dict[str, ProfileAchievement]:
    """Map achievement id to state, adding rows for catalog entries the profile predates."""
    states = {s.achievement_id: s for s in profile.achievements}
    for definition in ACHIEVEMENTS:
        if definition.achievement_id not in states:
            state = ProfileAchievement(achievement_id=definition.achievement_id, claimed=False)
            profile.achievements.append(state)
            states[definition.achievement_id] = state
    return states


def evaluate_achievements(
    profile: RewardProfile,
    trigger: AchievementTrigger,
    value: float,
    now: datetime,
) -> list[str]:
    """Unlock every not-yet-unlocked achievement whose condition matches the event.

    Unlocking never touches balances; the reward is granted by
    ``claim_achievement``. Returns the ids unlocked by this event.
    """
    unlocked: list[str] = []
    states = _states_by_id(profile)
    for definition in ACHIEVEMENTS:
        state = states[definition.achievement_id]
        if state.unlocked_at is not None:
            continue
        if definition.matches(trigger, value):
            state.unlocked_at = now
            unlocked.append(definition.achievement_id)

    if unlocked:
        # Bump the profile row so its version guards the unlock too
        profile.updated_at = now
        logger.info(
            "achievement_unlocked",
            user_id=profile.user_id,
            achievements=unlocked,
            trigger=trigger.value,
            value=value,
        )
    return unlocked


async def unlock_for_event(
    db: AsyncSession,
    user_id: int,
    trigger: AchievementTrigger,
    value: float,
    now: datetime | None = None,
) -> list[str]:
    """Load (or create) the profile and evaluate one progress event. Caller commits."""
    now = now or utc_now()
    profile = await get_or_create_profile(db, user_id, now)
    return evaluate_achievements(profile, trigger, value, now)


def achievement_view(definition: AchievementDefinition, state: ProfileAchievement | None) -> dict:
    """Catalog entry merged with a user's unlock/claim state."""
    return {
        "achievement_id": definition.achievement_id,
        "title": definition.title,
        "description": definition.description,
        "icon": definition.icon,
        "color": definition.color,
        "reward_type": definition.reward.type.value,
        "reward_amount": definition.reward.amount,
        "unlocked_at": state.unlocked_at if state else None,
        "claimed": state.claimed if state else False,
        "claimed_at": state.claimed_at if state else None,
    }


def list_achievements(profile: RewardProfile) -> list[dict]:
    """Every catalog achievement with this profile's state, in catalog order."""
    states = {s.achievement_id: s for s in profile.achievements}
    return [achievement_view(d, states.get(d.achievement_id)) for d in ACHIEVEMENTS]


async def claim_achievement(
    db: AsyncSession,
    redis: object,
    user_id: int,
    achievement_id: str,
    now: datetime | None = None,
) -> dict:
    """Credit an unlocked, unclaimed achievement's reward exactly once."""
    now = now or utc_now()
    definition = ACHIEVEMENTS_BY_ID.get(achievement_id)
    if definition is None:
        raise NotFound("Achievement not found")
    await ensure_profile(db, user_id, now)

    async with atomic_update(db):
        profile = await get_or_create_profile(db, user_id, now)
        state = _states_by_id(profile)[achievement_id]

        if state.unlocked_at is None:
            raise AchievementNotClaimable("Achievement not unlocked yet")
        if state.claimed:
            raise AchievementNotClaimable("Achievement already claimed")

        refresh_before_grant(db, profile, [definition.reward], now)
        credit(db, profile, definition.reward, TransactionSource.ACHIEVEMENT, now, definition.title)
        state.claimed = True
        state.claimed_at = now
        await db.flush()

    logger.info(
        "achievement_claimed",
        user_id=user_id,
        achievement_id=achievement_id,
        reward_type=definition.reward.type.value,
        amount=definition.reward.amount,
    )
    await publish_reward_event(
        redis, "achievement_claimed", user_id,
        achievement_id=achievement_id,
        reward=definition.reward.to_dict(),
    )
    return {
        "achievement": achievement_view(definition, state),
        "balances": balances(profile),
    }
