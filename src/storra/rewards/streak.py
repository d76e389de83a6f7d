"""Daily-login streak arithmetic."""

from __future__ import annotations

from datetime import datetime

from storra.rewards.day_utils import days_between


def compute_streak(now: datetime, last_login: datetime | None, current_streak: int) -> int:
    """Return the streak after a login at ``now``.

    - No previous login: streak starts at 1.
    - Previous login on the preceding calendar day: streak continues (+1).
    - Gap of more than one calendar day: streak restarts at 1.
    - Same calendar day: streak is unchanged (callers reject same-day
      claims before reaching this point).
    """
    if last_login is None:
        return 1

    diff_days = days_between(last_login, now)
    if diff_days == 1:
        return current_streak + 1
    if diff_days <= 0:
        return max(current_streak, 1)
    return 1


def longest_streak(previous_longest: int, new_streak: int) -> int:
    """Longest streak ever reached."""
    return max(previous_longest, new_streak)
