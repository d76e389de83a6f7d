"""Calendar-day helpers for daily claims, streaks and spin resets.

All day comparisons happen on calendar dates in the configured reward
timezone, never on raw 24-hour windows.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from storra.config import get_settings


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def reward_timezone() -> ZoneInfo:
    """Timezone that defines where one reward day ends and the next begins."""
    return ZoneInfo(get_settings().reward_timezone)


def calendar_date(dt: datetime) -> date:
    """Calendar date of an instant in the reward timezone."""
    return as_utc(dt).astimezone(reward_timezone()).date()


def days_between(earlier: datetime, later: datetime) -> int:
    """Number of calendar-day boundaries crossed from ``earlier`` to ``later``."""
    return (calendar_date(later) - calendar_date(earlier)).days


def is_same_day(a: datetime | None, b: datetime) -> bool:
    """True when both instants fall on the same reward-timezone calendar date."""
    if a is None:
        return False
    return calendar_date(a) == calendar_date(b)


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    return calendar.monthrange(year, month)[1]
