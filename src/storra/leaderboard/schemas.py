"""Pydantic models for leaderboard endpoints."""

from __future__ import annotations

from storra.schemas import ApiModel


class LeaderboardEntry(ApiModel):
    rank: int
    user_id: int
    display_name: str
    avatar_url: str | None = None
    total_points: int


class LeaderboardMeta(ApiModel):
    total: int
    page: int
    limit: int
    total_pages: int


class LeaderboardResponse(ApiModel):
    entries: list[LeaderboardEntry]
    meta: LeaderboardMeta
