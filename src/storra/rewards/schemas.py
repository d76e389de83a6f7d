"""Pydantic models for reward, daily-login and spin-wheel endpoints."""

from __future__ import annotations

from datetime import datetime

from storra.schemas import ApiModel


class BalancesResponse(ApiModel):
    coins: int
    points: int
    diamonds: int
    spin_chances: int
    trial_days_remaining: int


class RewardItem(ApiModel):
    type: str
    amount: int
    description: str


# --- Achievements ---


class AchievementResponse(ApiModel):
    achievement_id: str
    title: str
    description: str
    icon: str
    color: str
    reward_type: str
    reward_amount: int
    unlocked_at: datetime | None = None
    claimed: bool = False
    claimed_at: datetime | None = None


class AchievementsResponse(ApiModel):
    achievements: list[AchievementResponse]


class AchievementClaimResponse(ApiModel):
    achievement: AchievementResponse
    balances: BalancesResponse


# --- Ledger ---


class TransactionEntry(ApiModel):
    id: int
    direction: str
    reward_type: str
    amount: int
    source: str
    description: str
    created_at: datetime


class TransactionsResponse(ApiModel):
    entries: list[TransactionEntry]
    total: int
    page: int
    per_page: int


class RewardsDashboardResponse(ApiModel):
    balances: BalancesResponse
    current_streak: int
    longest_streak: int
    last_login_date: datetime | None = None
    quizzes_completed: int
    perfect_scores: int
    achievements: list[AchievementResponse]
    recent_transactions: list[TransactionEntry]


# --- Daily login ---


class DailyClaimResponse(ApiModel):
    rewards: list[RewardItem]
    streak: int
    longest_streak: int
    balances: BalancesResponse
    unlocked_achievements: list[str] = []


class DailyInfoResponse(ApiModel):
    claimed_today: bool
    streak: int
    longest_streak: int
    balances: BalancesResponse


class CalendarDay(ApiModel):
    day: int
    rewards: list[RewardItem]
    claimed: bool
    claimed_at: datetime | None = None


class CalendarResponse(ApiModel):
    month: int
    year: int
    calendar: list[CalendarDay]
    current_streak: int


# --- Spin wheel ---


class WheelEntryResponse(ApiModel):
    name: str
    type: str
    amount: int | None = None
    weight: float


class SpinResponse(ApiModel):
    reward: WheelEntryResponse
    throttled: bool
    balances: BalancesResponse
    spin_chances: int


class PreviewEntry(WheelEntryResponse):
    mystery: bool = False


class SpinPreviewResponse(ApiModel):
    rewards: list[PreviewEntry]
    spin_chances: int
