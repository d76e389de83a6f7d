"""Daily spin-allowance reset: arq cron worker.

Import path for arq CLI: arq storra.workers.spin_reset.WorkerSettings

The per-request reset in ``storra.rewards.spin_wheel`` is authoritative;
this job only pre-warms profiles that were not touched today and is
disabled unless STORRA_SPIN_BULK_RESET_ENABLED is set.
"""

from __future__ import annotations

import logging
from datetime import datetime

from arq import cron
from arq.connections import RedisSettings
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storra.config import get_settings
from storra.database import close_db, get_session_factory, init_db
from storra.db.models import RewardProfile
from storra.exceptions import ConcurrentUpdate
from storra.rewards.day_utils import utc_now
from storra.rewards.ledger import atomic_update
from storra.rewards.spin_wheel import needs_allowance_reset, refresh_allowance

logger = logging.getLogger(__name__)


async def stale_profile_ids(db: AsyncSession, now: datetime) -> list[int]:
    """Profiles whose allowance was last reset on an earlier calendar day."""
    result = await db.execute(
        select(RewardProfile)
        .where(or_(RewardProfile.last_spin_reset_date.is_(None), RewardProfile.last_spin_reset_date < now))
        .order_by(RewardProfile.id)
    )
    return [p.id for p in result.scalars() if needs_allowance_reset(p, now)]


async def reset_stale_allowances(db: AsyncSession, now: datetime | None = None) -> int:
    """Reset every stale profile, one transaction each. Returns the number reset.

    A profile is re-checked inside its own transaction, so a user who already
    spun today keeps their decremented allowance.
    """
    now = now or utc_now()
    profile_ids = await stale_profile_ids(db, now)
    await db.rollback()

    reset = 0
    for profile_id in profile_ids:
        try:
            async with atomic_update(db):
                profile = await db.get(RewardProfile, profile_id, populate_existing=True)
                if profile is not None and refresh_allowance(db, profile, now):
                    await db.flush()
                    reset += 1
        except ConcurrentUpdate:
            logger.info("Profile %d changed during bulk reset, left to the lazy path", profile_id)
    return reset


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("Spin reset worker started (enabled=%s)", settings.spin_bulk_reset_enabled)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Spin reset worker shut down")


async def reset_spin_allowances(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled arq task: runs daily at 00:00 in the worker's clock."""
    if not get_settings().spin_bulk_reset_enabled:
        logger.debug("Bulk spin reset disabled, skipping")
        return 0

    async with get_session_factory()() as db:
        try:
            count = await reset_stale_allowances(db)
        except Exception:
            logger.exception("Bulk spin reset failed")
            raise
    logger.info("Bulk spin reset complete: %d profiles", count)
    return count


class WorkerSettings:
    """arq worker settings for the spin reset scheduler."""

    functions = [reset_spin_allowances]
    cron_jobs = [
        cron(reset_spin_allowances, hour=0, minute=0),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 1
    job_timeout = 600
