"""Dynamic pricing - price rises with cumulative plays, optional off-peak discounts."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from royalty_indexer.errors import StrategyConfigError
from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import BASIS_POINTS, RoyaltyShare, Split
from royalty_indexer.strategy.base import (
    positive_param,
    royalty_table_or_artist,
    split_by_basis_points,
    wei_param,
)


@dataclass(frozen=True)
class DiscountWindow:
    """UTC hour range [start_hour, end_hour), wrapping past midnight."""

    start_hour: int
    end_hour: int
    discount_bps: int

    def contains(self, hour: int) -> bool:
        if self.start_hour <= self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour


class DynamicPricingStrategy:
    """price = min(max_price, base_price + price_step * (plays // plays_per_step)).

    The play count feeding the formula is a snapshot refreshed at most
    every ``recompute_interval`` seconds, so the price is stable between
    recomputes.
    """

    strategy_id = "dynamic-pricing-v1"

    def __init__(
        self,
        royalties: list[RoyaltyShare],
        base_price: int,
        price_step: int,
        plays_per_step: int,
        max_price: int,
        recompute_interval: int = 3600,
        discount_windows: list[DiscountWindow] | None = None,
    ) -> None:
        if max_price < base_price:
            raise StrategyConfigError("max_price must not be below base_price")
        self.royalties = royalties
        self.base_price = base_price
        self.price_step = price_step
        self.plays_per_step = plays_per_step
        self.max_price = max_price
        self.recompute_interval = recompute_interval
        self.discount_windows = discount_windows or []
        self.play_count = 0
        self._snapshot_plays = 0
        self._snapshot_at: int | None = None

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "DynamicPricingStrategy":
        raw_windows = params.get("discount_windows", [])
        if not isinstance(raw_windows, list):
            raise StrategyConfigError("discount_windows must be a list")
        windows = []
        for i, raw in enumerate(raw_windows):
            if not isinstance(raw, dict):
                raise StrategyConfigError(f"discount_windows[{i}] must be an object")
            start = wei_param(raw, "start_hour")
            end = wei_param(raw, "end_hour")
            bps = wei_param(raw, "discount_bps")
            if start > 23 or end > 24 or bps > BASIS_POINTS:
                raise StrategyConfigError(f"discount_windows[{i}] out of range")
            windows.append(DiscountWindow(start, end, bps))
        return cls(
            royalties=royalty_table_or_artist(params),
            base_price=wei_param(params, "base_price"),
            price_step=wei_param(params, "price_step", 0),
            plays_per_step=positive_param(params, "plays_per_step", 1000),
            max_price=wei_param(params, "max_price"),
            recompute_interval=positive_param(params, "recompute_interval", 3600),
            discount_windows=windows,
        )

    def current_price(self, now: int) -> int:
        if self._snapshot_at is None or now - self._snapshot_at >= self.recompute_interval:
            self._snapshot_plays = self.play_count
            self._snapshot_at = now
        steps = self._snapshot_plays // self.plays_per_step
        price = min(self.max_price, self.base_price + self.price_step * steps)
        hour = (now // 3600) % 24
        discount = max(
            (w.discount_bps for w in self.discount_windows if w.contains(hour)),
            default=0,
        )
        return price * (BASIS_POINTS - discount) // BASIS_POINTS

    def compute_min_payment(self, payment_type: PaymentType, now: int | None = None) -> int:
        if payment_type == PaymentType.TIP:
            return 0
        return self.current_price(int(time.time()) if now is None else now)

    def is_authorized(self, payer: str, now: int | None = None) -> bool:
        return False

    def compute_splits(self, amount: int, payment_type: PaymentType = PaymentType.STREAM) -> list[Split]:
        return split_by_basis_points(amount, self.royalties)

    def record_payment(self, payer: str, amount: int, payment_type: PaymentType, now: int) -> None:
        if payment_type != PaymentType.TIP:
            self.play_count += 1

    def record_free_play(self, payer: str, now: int) -> int:
        return 0
