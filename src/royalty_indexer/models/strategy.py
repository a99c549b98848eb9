"""Economic strategy models: per-song configuration and derived splits."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

BASIS_POINTS = 10_000  # 100%


@dataclass(frozen=True)
class RoyaltyShare:
    """One row of a basis-point royalty table."""

    recipient: str
    basis_points: int
    role: str


@dataclass(frozen=True)
class Split:
    """A computed payout. Derived on demand, never stored."""

    recipient: str
    amount: int  # wei
    basis_points: int
    role: str


@dataclass
class StrategyConfig:
    """A song's association to a strategy plus its parameters."""

    song_id: str
    strategy_id: str  # "pay-per-stream-v1", "patronage-v1", ...
    params: dict[str, Any] = field(default_factory=dict)
    updated_at: str = ""


@dataclass
class PaymentRoute:
    """How a single gross payment is divided."""

    song_id: str
    payer: str
    gross: int  # wei
    protocol_fee: int
    net: int
    treasury: str
    splits: list[Split] = field(default_factory=list)
    free_play: bool = False
    reward: int = 0  # gift-economy listener credit
