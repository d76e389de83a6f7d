"""Local user records mirrored from the identity provider."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storra.db.models import User

logger = structlog.get_logger()


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    """Fetch a user by identity-provider subject."""
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    external_id: str,
    email: str | None = None,
    full_name: str | None = None,
) -> User:
    """
    Return the local user for a provider subject, creating it on first sight.

    A racing first request may insert the same subject; the loser re-reads
    the winner's row.
    """
    now = datetime.now(timezone.utc)
    user = await get_user_by_external_id(db, external_id)
    if user is not None:
        user.last_seen = now
        if email and user.email != email:
            user.email = email
        await db.commit()
        return user

    user = User(external_id=external_id, email=email, full_name=full_name, created_at=now, last_seen=now)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_user_by_external_id(db, external_id)
        if existing is None:
            raise
        return existing

    logger.info("user_created", user_id=user.id, external_id=external_id)
    return user
