"""Reward event fan-out over Redis pub/sub."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

REWARD_EVENTS_CHANNEL = "pubsub:reward_events"


async def publish_reward_event(redis: object, event: str, user_id: int, **payload: Any) -> None:
    """Publish a committed reward event. Never raises: delivery is best-effort."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[attr-defined]
            REWARD_EVENTS_CHANNEL,
            json.dumps({"event": event, "user_id": user_id, **payload}, default=str),
        )
    except Exception:
        logger.warning("Failed to publish %s reward event", event, exc_info=True)


async def publish_unlocks(redis: object, user_id: int, achievement_ids: list[str]) -> None:
    """Publish one ``achievement_unlocked`` event per newly unlocked achievement."""
    for achievement_id in achievement_ids:
        await publish_reward_event(redis, "achievement_unlocked", user_id, achievement_id=achievement_id)
