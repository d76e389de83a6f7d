"""Leaderboard: users ranked by total quiz points.

Ordering is points descending, then lower user id first, so every user gets
a unique, deterministic 1-based rank and ties never reorder between calls.
Totals are aggregated from ``quiz_progress`` on each read, which makes the
board read-after-write consistent with quiz submissions.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from storra.db.models import QuizProgress, User
from storra.exceptions import NotFound


@dataclass(frozen=True)
class LeaderboardRow:
    user_id: int
    display_name: str
    avatar_url: str | None
    total_points: int


def display_name(user_id: int, full_name: str | None, email: str | None) -> str:
    if full_name:
        return full_name
    if email:
        return email.split("@", 1)[0]
    return f"Learner-{user_id}"


def sort_key(row: LeaderboardRow) -> tuple[int, int]:
    return (-row.total_points, row.user_id)


def rank_entries(rows: Iterable[LeaderboardRow], offset: int = 0) -> list[dict]:
    """Order rows and assign ranks starting at ``offset + 1``."""
    ordered = sorted(rows, key=sort_key)
    return [
        {
            "rank": offset + position,
            "user_id": row.user_id,
            "display_name": row.display_name,
            "avatar_url": row.avatar_url,
            "total_points": row.total_points,
        }
        for position, row in enumerate(ordered, start=1)
    ]


def _totals_subquery():
    """Per-user point totals; users without progress rows total 0."""
    total = func.coalesce(func.sum(QuizProgress.points_earned), 0)
    return (
        select(
            User.id.label("user_id"),
            User.full_name.label("full_name"),
            User.email.label("email"),
            User.avatar_url.label("avatar_url"),
            total.label("total_points"),
        )
        .outerjoin(QuizProgress, QuizProgress.user_id == User.id)
        .group_by(User.id, User.full_name, User.email, User.avatar_url)
        .subquery()
    )


def _to_row(row) -> LeaderboardRow:
    return LeaderboardRow(
        user_id=row.user_id,
        display_name=display_name(row.user_id, row.full_name, row.email),
        avatar_url=row.avatar_url,
        total_points=int(row.total_points),
    )


async def get_leaderboard(db: AsyncSession, page: int = 1, limit: int = 50) -> dict:
    """One page of the ranked board plus pagination metadata."""
    totals = _totals_subquery()
    offset = (page - 1) * limit

    count_result = await db.execute(select(func.count()).select_from(User))
    total_users = count_result.scalar_one()

    result = await db.execute(
        select(totals)
        .order_by(totals.c.total_points.desc(), totals.c.user_id.asc())
        .offset(offset)
        .limit(limit)
    )
    entries = rank_entries([_to_row(r) for r in result], offset=offset)

    return {
        "entries": entries,
        "meta": {
            "total": total_users,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total_users / limit) if total_users else 0,
        },
    }


async def get_user_rank(db: AsyncSession, user_id: int) -> dict:
    """The user's own entry: rank = 1 + users strictly ahead in board order."""
    totals = _totals_subquery()

    mine_result = await db.execute(select(totals).where(totals.c.user_id == user_id))
    mine = mine_result.one_or_none()
    if mine is None:
        raise NotFound("User not found")

    ahead_result = await db.execute(
        select(func.count()).select_from(totals).where(
            or_(
                totals.c.total_points > mine.total_points,
                and_(totals.c.total_points == mine.total_points, totals.c.user_id < user_id),
            )
        )
    )
    row = _to_row(mine)
    return {
        "rank": ahead_result.scalar_one() + 1,
        "user_id": row.user_id,
        "display_name": row.display_name,
        "avatar_url": row.avatar_url,
        "total_points": row.total_points,
    }
