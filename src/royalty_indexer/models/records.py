"""Internal record types for ledger persistence and pipeline results."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from royalty_indexer.models.events import PaymentEvent


@dataclass
class WriteResult:
    """Outcome of one ledger write."""

    inserted: bool  # False on a duplicate (tx_hash, log_index)
    song_id: str | None = None  # None when the song hash did not resolve


@dataclass
class RetryItem:
    """A failed event waiting in the in-process retry buffer."""

    event: PaymentEvent
    reason: str
    attempts: int = 1

    @property
    def key(self) -> tuple[str, int]:
        return self.event.key


@dataclass
class PoisonRecord:
    """An event quarantined after exhausting its retry budget."""

    tx_hash: str
    log_index: int
    song_hash: str | None
    reason: str
    attempts: int
    block_number: int | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class PlayRecord:
    """A row in the plays table."""

    id: int
    song_id: str | None
    song_hash: str
    listener_address: str
    amount: Decimal  # gross
    protocol_fee: Decimal
    net_amount: Decimal
    payment_type: str
    tx_hash: str
    log_index: int
    block_number: int
    timestamp: str


@dataclass
class SongRecord:
    """Catalog song with its play/earnings aggregates."""

    id: str
    song_hash: str | None
    title: str = ""
    artist_address: str = ""
    plays: int = 0
    earnings: Decimal = Decimal(0)


@dataclass
class CycleReport:
    """Results from a single orchestration cycle."""

    from_block: int
    to_block: int
    head: int
    fetched: int = 0
    decoded: int = 0
    decode_failures: int = 0
    written: int = 0
    duplicates: int = 0
    queued_for_retry: int = 0
    retried_ok: int = 0
    poisoned: int = 0
    duration_ms: int = 0


@dataclass
class RetryPassReport:
    """Results from one pass over the retry buffer."""

    attempted: int = 0
    resolved: int = 0
    poisoned: int = 0
    remaining: int = 0


@dataclass
class ReplayReport:
    """Result of an administrative replay."""

    scanned: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[tuple[str, int, str]] = field(default_factory=list)
