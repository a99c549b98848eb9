"""Gift economy - free streams that earn listener rewards, voluntary tips."""

from __future__ import annotations

from typing import Any

from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import BASIS_POINTS, RoyaltyShare, Split
from royalty_indexer.strategy.base import (
    royalty_table_or_artist,
    split_by_basis_points,
    wei_param,
)


class GiftEconomyStrategy:
    """Streams cost nothing and credit the listener a reward.

    reward = base_reward
             + early_bonus   while distinct listeners before this play < threshold
    then × repeat_multiplier_bps / 10000 once the listener's play count
    (including this play) exceeds ``repeat_threshold``.
    """

    strategy_id = "gift-economy-v1"

    def __init__(
        self,
        tip_splits: list[RoyaltyShare],
        base_reward: int = 1,
        early_bonus: int = 5,
        early_listener_threshold: int = 100,
        repeat_threshold: int = 10,
        repeat_multiplier_bps: int = 15_000,
        min_tip: int = 0,
    ) -> None:
        self.tip_splits = tip_splits
        self.base_reward = base_reward
        self.early_bonus = early_bonus
        self.early_listener_threshold = early_listener_threshold
        self.repeat_threshold = repeat_threshold
        self.repeat_multiplier_bps = repeat_multiplier_bps
        self.min_tip = min_tip
        self._plays: dict[str, int] = {}
        self.total_tips = 0

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "GiftEconomyStrategy":
        return cls(
            tip_splits=royalty_table_or_artist(params, "tip_splits"),
            base_reward=wei_param(params, "base_reward", 1),
            early_bonus=wei_param(params, "early_bonus", 5),
            early_listener_threshold=wei_param(params, "early_listener_threshold", 100),
            repeat_threshold=wei_param(params, "repeat_threshold", 10),
            repeat_multiplier_bps=wei_param(params, "repeat_multiplier_bps", 15_000),
            min_tip=wei_param(params, "min_tip", 0),
        )

    @property
    def listener_count(self) -> int:
        return len(self._plays)

    def compute_min_payment(self, payment_type: PaymentType, now: int | None = None) -> int:
        if payment_type == PaymentType.STREAM:
            return 0
        return self.min_tip

    def is_authorized(self, payer: str, now: int | None = None) -> bool:
        return True

    def compute_splits(self, amount: int, payment_type: PaymentType = PaymentType.STREAM) -> list[Split]:
        return split_by_basis_points(amount, self.tip_splits)

    def record_payment(self, payer: str, amount: int, payment_type: PaymentType, now: int) -> None:
        self.total_tips += amount

    def record_free_play(self, payer: str, now: int) -> int:
        key = payer.lower()
        reward = self.base_reward
        if self.listener_count < self.early_listener_threshold:
            reward += self.early_bonus
        plays = self._plays.get(key, 0) + 1
        self._plays[key] = plays
        if plays > self.repeat_threshold:
            reward = reward * self.repeat_multiplier_bps // BASIS_POINTS
        return reward
