"""Reward catalogs: achievement definitions and the 30-day calendar schedule.

Both are process-wide constants built once at import time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from storra.rewards.reward_types import CurrencyReward, RewardType


class AchievementTrigger(str, Enum):
    FIRST_LOGIN = "first_login"
    LOGIN_STREAK = "login_streak"
    LESSONS_COMPLETED = "lessons_completed"
    QUIZ_PERCENTAGE = "quiz_percentage"
    QUIZZES_COMPLETED = "quizzes_completed"


@dataclass(frozen=True)
class AchievementDefinition:
    achievement_id: str
    title: str
    description: str
    icon: str
    color: str
    reward: CurrencyReward
    trigger: AchievementTrigger
    threshold: float

    def matches(self, trigger: AchievementTrigger, value: float) -> bool:
        """Unlock conditions are exact: streak == 7 fires once, not on every later day."""
        return trigger == self.trigger and value == self.threshold


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        achievement_id="first_login",
        title="Welcome Aboard!",
        description="Complete your first login",
        icon="hand-left-outline",
        color="bg-blue-50",
        reward=CurrencyReward(RewardType.COINS, 50, "Welcome Aboard!"),
        trigger=AchievementTrigger.FIRST_LOGIN,
        threshold=1,
    ),
    AchievementDefinition(
        achievement_id="first_course_completed",
        title="First Course Completed",
        description="Complete your first course",
        icon="school-outline",
        color="bg-green-50",
        reward=CurrencyReward(RewardType.POINTS, 100, "First Course Completed"),
        trigger=AchievementTrigger.LESSONS_COMPLETED,
        threshold=1,
    ),
    AchievementDefinition(
        achievement_id="perfect_quiz_score",
        title="Perfect Quiz Score",
        description="Score 100% on any quiz",
        icon="ribbon-outline",
        color="bg-purple-50",
        reward=CurrencyReward(RewardType.COINS, 200, "Perfect Quiz Score"),
        trigger=AchievementTrigger.QUIZ_PERCENTAGE,
        threshold=100,
    ),
    AchievementDefinition(
        achievement_id="7_day_streak",
        title="7-Day Streak Achieved",
        description="Login for 7 consecutive days",
        icon="flame-outline",
        color="bg-yellow-50",
        reward=CurrencyReward(RewardType.SPIN_CHANCE, 1, "7-Day Streak Achieved"),
        trigger=AchievementTrigger.LOGIN_STREAK,
        threshold=7,
    ),
    AchievementDefinition(
        achievement_id="30_day_streak",
        title="30-Day Streak Master",
        description="Login for 30 consecutive days",
        icon="trophy-outline",
        color="bg-red-50",
        reward=CurrencyReward(RewardType.TRIAL_ACCESS, 7, "30-Day Streak Master"),
        trigger=AchievementTrigger.LOGIN_STREAK,
        threshold=30,
    ),
    AchievementDefinition(
        achievement_id="10_quizzes_completed",
        title="Quiz Master",
        description="Complete 10 quizzes",
        icon="checkbox-outline",
        color="bg-indigo-50",
        reward=CurrencyReward(RewardType.POINTS, 500, "Quiz Master"),
        trigger=AchievementTrigger.QUIZZES_COMPLETED,
        threshold=10,
    ),
)

ACHIEVEMENTS_BY_ID = MappingProxyType({a.achievement_id: a for a in ACHIEVEMENTS})


def reward_for_day(day: int) -> tuple[CurrencyReward, ...]:
    """Reward bundle for a day of the month (1..30); other days yield nothing."""
    if day < 1:
        return ()

    if day <= 6:
        return (CurrencyReward(RewardType.COINS, 10 * day, f"Day {day} login bonus"),)

    if day == 7:
        return (
            CurrencyReward(RewardType.COINS, 100, "Week 1 completion bonus"),
            CurrencyReward(RewardType.SPIN_CHANCE, 1, "Free spin!"),
        )

    if day <= 13:
        return (CurrencyReward(RewardType.COINS, 15 * (day - 7), f"Day {day} login bonus"),)

    if day == 14:
        return (
            CurrencyReward(RewardType.COINS, 150, "Week 2 completion bonus"),
            CurrencyReward(RewardType.POINTS, 50, "Bonus points!"),
        )

    if day <= 20:
        return (CurrencyReward(RewardType.COINS, 20 * (day - 14), f"Day {day} login bonus"),)

    if day == 21:
        return (
            CurrencyReward(RewardType.COINS, 200, "Week 3 completion bonus"),
            CurrencyReward(RewardType.SPIN_CHANCE, 2, "Double spin!"),
        )

    if day <= 27:
        return (
            CurrencyReward(RewardType.COINS, 25 * (day - 21), f"Day {day} login bonus"),
            CurrencyReward(RewardType.POINTS, 10 * (day - 21), "Daily points"),
        )

    if day <= 30:
        return (
            CurrencyReward(RewardType.COINS, 50 * (day - 27), f"Day {day} mega bonus"),
            CurrencyReward(RewardType.POINTS, 25 * (day - 27), "Mega points"),
            CurrencyReward(RewardType.SPIN_CHANCE, 1, "Daily spin"),
        )

    return ()
