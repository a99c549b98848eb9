"""Dutch auction - declining price for a one-time access grant."""

from __future__ import annotations

import time
from typing import Any

from royalty_indexer.errors import PaymentRejected, StrategyConfigError
from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import RoyaltyShare, Split
from royalty_indexer.strategy.base import (
    positive_param,
    royalty_table_or_artist,
    split_by_basis_points,
    wei_param,
)


class DutchAuctionStrategy:
    """Access price falls linearly from start_price to end_price.

    A purchase grants permanent access; grant holders stream free. An
    optional ``supply`` caps the number of grants.
    """

    strategy_id = "dutch-auction-v1"

    def __init__(
        self,
        royalties: list[RoyaltyShare],
        start_price: int,
        end_price: int,
        start_time: int,
        duration: int,
        supply: int | None = None,
    ) -> None:
        if end_price > start_price:
            raise StrategyConfigError("end_price must not exceed start_price")
        self.royalties = royalties
        self.start_price = start_price
        self.end_price = end_price
        self.start_time = start_time
        self.duration = duration
        self.supply = supply
        self._holders: set[str] = set()

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "DutchAuctionStrategy":
        supply = params.get("supply")
        return cls(
            royalties=royalty_table_or_artist(params),
            start_price=wei_param(params, "start_price"),
            end_price=wei_param(params, "end_price"),
            start_time=wei_param(params, "start_time"),
            duration=positive_param(params, "duration"),
            supply=positive_param(params, "supply") if supply is not None else None,
        )

    @property
    def sold(self) -> int:
        return len(self._holders)

    def price_at(self, now: int) -> int:
        elapsed = now - self.start_time
        if elapsed <= 0:
            return self.start_price
        if elapsed >= self.duration:
            return self.end_price
        drop = (self.start_price - self.end_price) * elapsed // self.duration
        return self.start_price - drop

    def compute_min_payment(self, payment_type: PaymentType, now: int | None = None) -> int:
        if payment_type == PaymentType.TIP:
            return 0
        return self.price_at(int(time.time()) if now is None else now)

    def is_authorized(self, payer: str, now: int | None = None) -> bool:
        return payer.lower() in self._holders

    def compute_splits(self, amount: int, payment_type: PaymentType = PaymentType.STREAM) -> list[Split]:
        return split_by_basis_points(amount, self.royalties)

    def record_payment(self, payer: str, amount: int, payment_type: PaymentType, now: int) -> None:
        key = payer.lower()
        if payment_type == PaymentType.TIP or key in self._holders:
            return
        if self.supply is not None and self.sold >= self.supply:
            raise PaymentRejected("sold_out", f"all {self.supply} access grants sold")
        self._holders.add(key)

    def record_free_play(self, payer: str, now: int) -> int:
        return 0
