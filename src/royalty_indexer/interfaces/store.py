"""LedgerStore protocol - persists plays, song aggregates, checkpoints and poison."""

from __future__ import annotations

from typing import Protocol

from royalty_indexer.models.events import PaymentEvent
from royalty_indexer.models.records import (
    PlayRecord,
    PoisonRecord,
    SongRecord,
    WriteResult,
)
from royalty_indexer.models.strategy import StrategyConfig


class LedgerStore(Protocol):
    """Off-chain ledger the indexer writes into."""

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Checkpoint ─────────────────────────────────────────

    async def get_checkpoint(self, name: str) -> int | None:
        ...

    async def set_checkpoint(self, name: str, block: int) -> None:
        """Persist the last fully processed block. Never moves backwards."""
        ...

    # ── Ledger ─────────────────────────────────────────────

    async def record_payment(self, event: PaymentEvent) -> WriteResult:
        """Insert the play and bump song aggregates in one transaction."""
        ...

    async def get_play(self, tx_hash: str, log_index: int) -> PlayRecord | None:
        ...

    async def get_plays(self, song_id: str | None = None) -> list[PlayRecord]:
        ...

    async def count_plays(self) -> int:
        ...

    # ── Songs ──────────────────────────────────────────────

    async def upsert_song(
        self, song_id: str, song_hash: str | None,
        title: str = "", artist_address: str = "",
    ) -> None:
        ...

    async def get_song(self, song_id: str) -> SongRecord | None:
        ...

    # ── Poison ─────────────────────────────────────────────

    async def upsert_poison(self, record: PoisonRecord) -> None:
        ...

    async def bump_poison(
        self, tx_hash: str, log_index: int, song_hash: str | None,
        reason: str, block_number: int | None,
    ) -> None:
        """Insert with attempts=1 or increment attempts on an existing row."""
        ...

    async def get_poison(self, tx_hash: str, log_index: int) -> PoisonRecord | None:
        ...

    async def list_poison(self, limit: int = 100, oldest_first: bool = False) -> list[PoisonRecord]:
        ...

    async def count_poison(self) -> int:
        ...

    async def delete_poison(self, tx_hash: str, log_index: int) -> bool:
        ...

    # ── Strategy configs ───────────────────────────────────

    async def save_strategy_config(self, config: StrategyConfig) -> None:
        ...

    async def get_strategy_config(self, song_id: str) -> StrategyConfig | None:
        ...
