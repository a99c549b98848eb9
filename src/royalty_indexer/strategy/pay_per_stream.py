"""Pay-per-stream - fixed minimum per payment type, static royalty table."""

from __future__ import annotations

from typing import Any

from royalty_indexer.errors import StrategyConfigError
from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import RoyaltyShare, Split
from royalty_indexer.strategy.base import (
    royalty_table_or_artist,
    split_by_basis_points,
    wei_param,
)


class PayPerStreamStrategy:
    """Every play costs at least a fixed amount; revenue follows the table.

    Params::

        {"min_payment": 1000,                 # default for every type
         "prices": {"download": 5000},        # per-type overrides
         "royalties": [{"recipient": ..., "basis_points": 6000, "role": "artist"}, ...]}

    ``royalties`` may be replaced by ``artist`` for a 100% artist split.
    """

    strategy_id = "pay-per-stream-v1"

    def __init__(
        self,
        min_payment: int,
        royalties: list[RoyaltyShare],
        prices: dict[PaymentType, int] | None = None,
    ) -> None:
        self.min_payment = min_payment
        self.royalties = royalties
        self.prices = prices or {}

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "PayPerStreamStrategy":
        min_payment = wei_param(params, "min_payment", 0)
        prices: dict[PaymentType, int] = {}
        raw_prices = params.get("prices", {})
        if not isinstance(raw_prices, dict):
            raise StrategyConfigError("prices must be an object keyed by payment type")
        for label in raw_prices:
            try:
                ptype = PaymentType.from_label(label)
            except KeyError:
                raise StrategyConfigError(f"unknown payment type {label!r}") from None
            prices[ptype] = wei_param(raw_prices, label)
        return cls(min_payment, royalty_table_or_artist(params), prices)

    def compute_min_payment(self, payment_type: PaymentType, now: int | None = None) -> int:
        return self.prices.get(payment_type, self.min_payment)

    def is_authorized(self, payer: str, now: int | None = None) -> bool:
        return False

    def compute_splits(self, amount: int, payment_type: PaymentType = PaymentType.STREAM) -> list[Split]:
        return split_by_basis_points(amount, self.royalties)

    def record_payment(self, payer: str, amount: int, payment_type: PaymentType, now: int) -> None:
        pass

    def record_free_play(self, payer: str, now: int) -> int:
        return 0
