"""Chain event models decoded from the payment router's log stream."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Context, Decimal
from enum import Enum

TOKEN_DECIMALS = 18

# uint256 has 78 digits; 100 keeps every conversion and sum exact.
AMOUNT_CONTEXT = Context(prec=100)
_WEI_PER_TOKEN = Decimal(10) ** TOKEN_DECIMALS


class PaymentType(int, Enum):
    """paymentType values emitted by PaymentRecorded."""

    STREAM = 0
    DOWNLOAD = 1
    TIP = 2
    PATRONAGE = 3
    NFT_ACCESS = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "PaymentType":
        return cls[label.upper()]


def to_token_units(wei: int) -> Decimal:
    """Convert an integer wei amount to token units without rounding."""
    return AMOUNT_CONTEXT.divide(Decimal(wei), _WEI_PER_TOKEN)


def to_wei(amount: Decimal) -> int:
    """Convert token units back to integer wei. Sub-wei fractions are truncated."""
    return int(AMOUNT_CONTEXT.multiply(amount, _WEI_PER_TOKEN))


def add_amounts(a: Decimal, b: Decimal) -> Decimal:
    return AMOUNT_CONTEXT.add(a, b)


def format_amount(amount: Decimal) -> str:
    """Plain (non-exponent) decimal text for storage."""
    return format(amount.normalize(AMOUNT_CONTEXT), "f")


@dataclass(frozen=True)
class RawLog:
    """An undecoded EVM log as returned by eth_getLogs."""

    address: str  # lowercase 0x hex
    topics: tuple[str, ...]  # lowercase 0x hex
    data: str  # 0x hex
    block_number: int
    tx_hash: str  # lowercase 0x hex
    log_index: int
    block_timestamp: int | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.tx_hash, self.log_index)


@dataclass(frozen=True)
class PaymentEvent:
    """A decoded PaymentRecorded log. Never mutated once written."""

    song_hash: str  # bytes32, lowercase 0x hex
    listener: str  # checksummed address
    gross_amount: Decimal  # token units
    protocol_fee: Decimal
    net_amount: Decimal  # trusted as reported on-chain
    payment_type: PaymentType
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: int | None = None  # block time (unix seconds) if the provider reports it

    @property
    def key(self) -> tuple[str, int]:
        return (self.tx_hash, self.log_index)
