"""EconomicStrategy protocol - the capability interface every strategy implements."""

from __future__ import annotations

from typing import Any, Protocol

from royalty_indexer.models.events import PaymentType
from royalty_indexer.models.strategy import Split


class EconomicStrategy(Protocol):
    """Pluggable policy for one song: minimum payment, access and revenue split."""

    strategy_id: str

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> "EconomicStrategy":
        """Build and validate from stored parameters (StrategyConfigError on bad input)."""
        ...

    def compute_min_payment(self, payment_type: PaymentType, now: int | None = None) -> int:
        """Smallest acceptable gross amount (wei) for this payment type."""
        ...

    def is_authorized(self, payer: str, now: int | None = None) -> bool:
        """Whether the payer may play without paying."""
        ...

    def compute_splits(self, amount: int, payment_type: PaymentType = PaymentType.STREAM) -> list[Split]:
        """Divide a net amount (after protocol fee) among payees."""
        ...

    def record_payment(
        self, payer: str, amount: int, payment_type: PaymentType, now: int,
    ) -> None:
        """Apply the state change of an accepted payment."""
        ...

    def record_free_play(self, payer: str, now: int) -> int:
        """Apply the state change of an authorized zero-payment play; returns any reward credit."""
        ...
