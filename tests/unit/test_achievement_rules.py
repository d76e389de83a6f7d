"""Achievement unlock conditions and reward variants."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from storra.db.models import RewardProfile
from storra.rewards.achievements import evaluate_achievements, list_achievements
from storra.rewards.catalog import ACHIEVEMENTS, AchievementTrigger
from storra.rewards.ledger import credit, debit
from storra.rewards.reward_types import CurrencyReward, ItemReward, RewardType, TransactionSource

NOW = datetime(2026, 6, 1, 8, tzinfo=timezone.utc)


def _profile() -> RewardProfile:
    return RewardProfile(
        id=1, user_id=1, coins=0, points=0, diamonds=0, spin_chances=0, trial_days_remaining=0,
    )


class TestEvaluateAchievements:
    """Unlocking is condition-driven and never grants rewards."""

    def test_streak_of_seven_unlocks_only_seven_day(self):
        profile = _profile()
        assert evaluate_achievements(profile, AchievementTrigger.LOGIN_STREAK, 7, NOW) == ["7_day_streak"]
        assert profile.spin_chances == 0

    def test_condition_is_exact(self):
        profile = _profile()
        assert evaluate_achievements(profile, AchievementTrigger.LOGIN_STREAK, 8, NOW) == []

    def test_unlock_happens_once(self):
        profile = _profile()
        evaluate_achievements(profile, AchievementTrigger.LOGIN_STREAK, 7, NOW)
        assert evaluate_achievements(profile, AchievementTrigger.LOGIN_STREAK, 7, NOW) == []

    def test_perfect_quiz(self):
        profile = _profile()
        assert evaluate_achievements(profile, AchievementTrigger.QUIZ_PERCENTAGE, 100.0, NOW) == [
            "perfect_quiz_score"
        ]

    def test_ninety_nine_percent_is_not_perfect(self):
        profile = _profile()
        assert evaluate_achievements(profile, AchievementTrigger.QUIZ_PERCENTAGE, 99.9, NOW) == []

    def test_listing_covers_whole_catalog(self):
        profile = _profile()
        evaluate_achievements(profile, AchievementTrigger.FIRST_LOGIN, 1, NOW)
        views = list_achievements(profile)
        assert [v["achievement_id"] for v in views] == [a.achievement_id for a in ACHIEVEMENTS]
        first = views[0]
        assert first["unlocked_at"] == NOW
        assert first["claimed"] is False


class TestRewardVariants:
    def test_currency_reward_moves_balance(self):
        db = MagicMock()
        profile = _profile()
        credit(db, profile, CurrencyReward(RewardType.DIAMOND, 5, "5 Diamonds"), TransactionSource.SPIN_WHEEL, NOW)
        assert profile.diamonds == 5

    def test_item_reward_is_recorded_without_balance_effect(self):
        db = MagicMock()
        profile = _profile()
        entry = credit(db, profile, ItemReward("Storra Shirt"), TransactionSource.SPIN_WHEEL, NOW)
        assert (entry.reward_type, entry.amount, entry.description) == ("item", 0, "Storra Shirt")
        assert (profile.coins, profile.points, profile.diamonds) == (0, 0, 0)

    def test_item_type_cannot_be_a_currency(self):
        with pytest.raises(ValueError):
            CurrencyReward(RewardType.ITEM, 1, "nope")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            CurrencyReward(RewardType.COINS, -1, "nope")

    def test_debit_cannot_overdraw(self):
        with pytest.raises(ValueError):
            debit(MagicMock(), _profile(), RewardType.SPIN_CHANCE, 1, TransactionSource.SPIN_COST, "Spin", NOW)
