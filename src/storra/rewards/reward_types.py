"""Reward variants.

A reward is either a ``CurrencyReward`` (moves a numeric balance) or an
``ItemReward`` (narrative/inventory only, recorded in history with no
balance effect). Code that applies rewards dispatches on the variant, so a
new reward type has to be added to ``BALANCE_FIELDS`` before it can be
credited.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class RewardType(str, Enum):
    COINS = "coins"
    POINTS = "points"
    DIAMOND = "diamond"
    SPIN_CHANCE = "spin_chance"
    TRIAL_ACCESS = "trial_access"
    ITEM = "item"


class Direction(str, Enum):
    EARN = "earn"
    SPEND = "spend"


class TransactionSource(str, Enum):
    DAILY_LOGIN = "daily_login"
    ACHIEVEMENT = "achievement"
    SPIN_WHEEL = "spin_wheel"
    SPIN_COST = "spin_cost"
    SPIN_RESET = "spin_reset"
    QUIZ_PERFECT_SCORE = "quiz_perfect_score"


# RewardProfile column credited by each currency type
BALANCE_FIELDS: dict[RewardType, str] = {
    RewardType.COINS: "coins",
    RewardType.POINTS: "points",
    RewardType.DIAMOND: "diamonds",
    RewardType.SPIN_CHANCE: "spin_chances",
    RewardType.TRIAL_ACCESS: "trial_days_remaining",
}


@dataclass(frozen=True)
class CurrencyReward:
    """A numeric grant of one balance type."""

    type: RewardType
    amount: int
    description: str

    def __post_init__(self) -> None:
        if self.type not in BALANCE_FIELDS:
            raise ValueError(f"{self.type.value} has no balance field")
        if self.amount < 0:
            raise ValueError("reward amount must be non-negative")

    def to_dict(self) -> dict:
        return {"type": self.type.value, "amount": self.amount, "description": self.description}


@dataclass(frozen=True)
class ItemReward:
    """A physical or cosmetic prize with no balance effect."""

    name: str
    description: str = ""

    @property
    def type(self) -> RewardType:
        return RewardType.ITEM

    @property
    def amount(self) -> int:
        return 0

    def to_dict(self) -> dict:
        return {"type": RewardType.ITEM.value, "amount": 0, "description": self.description or self.name}


Reward = Union[CurrencyReward, ItemReward]
