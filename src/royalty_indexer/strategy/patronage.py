"""Patronage - subscription cycles grant free streaming."""

from __future__ import annotations

import time
from typing import Any

from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import Split
from royalty_indexer.strategy.base import (
    positive_param,
    require_str,
    single_recipient,
    split_by_basis_points,
    wei_param,
)

DAY = 86_400


class PatronageStrategy:
    """Listeners pay a subscription fee per cycle and stream for free.

    Access lasts until ``last_payment + cycle_length + grace_period``
    (exclusive). Each subscription payment goes 100% to the artist.
    """

    strategy_id = "patronage-v1"

    def __init__(
        self,
        artist: str,
        subscription_fee: int,
        cycle_length: int = 30 * DAY,
        grace_period: int = 3 * DAY,
    ) -> None:
        self.artist = artist
        self.subscription_fee = subscription_fee
        self.cycle_length = cycle_length
        self.grace_period = grace_period
        self._last_payment: dict[str, int] = {}

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "PatronageStrategy":
        return cls(
            artist=require_str(params, "artist"),
            subscription_fee=positive_param(params, "subscription_fee"),
            cycle_length=positive_param(params, "cycle_length", 30 * DAY),
            grace_period=wei_param(params, "grace_period", 3 * DAY),
        )

    def compute_min_payment(self, payment_type: PaymentType, now: int | None = None) -> int:
        if payment_type == PaymentType.PATRONAGE:
            return self.subscription_fee
        return 0

    def access_expires_at(self, payer: str) -> int | None:
        last = self._last_payment.get(payer.lower())
        if last is None:
            return None
        return last + self.cycle_length + self.grace_period

    def is_authorized(self, payer: str, now: int | None = None) -> bool:
        expires = self.access_expires_at(payer)
        if expires is None:
            return False
        if now is None:
            now = int(time.time())
        return now < expires

    def compute_splits(self, amount: int, payment_type: PaymentType = PaymentType.STREAM) -> list[Split]:
        return split_by_basis_points(amount, single_recipient(self.artist))

    def record_payment(self, payer: str, amount: int, payment_type: PaymentType, now: int) -> None:
        if payment_type == PaymentType.PATRONAGE:
            self._last_payment[payer.lower()] = now

    def record_free_play(self, payer: str, now: int) -> int:
        return 0
