"""SQLite implementation of the LedgerStore protocol."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import aiosqlite

from royalty_indexer.models.events import PaymentEvent, add_amounts, format_amount
from royalty_indexer.models.records import (
    PlayRecord,
    PoisonRecord,
    SongRecord,
    WriteResult,
)
from royalty_indexer.models.strategy import StrategyConfig

SCHEMA = """
-- Catalog songs with play/earnings aggregates
CREATE TABLE IF NOT EXISTS songs (
    id TEXT PRIMARY KEY,
    song_hash TEXT UNIQUE,
    title TEXT NOT NULL DEFAULT '',
    artist_address TEXT NOT NULL DEFAULT '',
    plays INTEGER NOT NULL DEFAULT 0,
    earnings TEXT NOT NULL DEFAULT '0',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- One row per PaymentRecorded log
CREATE TABLE IF NOT EXISTS plays (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    song_id TEXT REFERENCES songs(id),
    song_hash TEXT NOT NULL,
    listener_address TEXT NOT NULL,
    amount TEXT NOT NULL,
    protocol_fee TEXT NOT NULL,
    net_amount TEXT NOT NULL,
    payment_type TEXT NOT NULL,
    tx_hash TEXT NOT NULL,
    log_index INTEGER NOT NULL,
    block_number INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    UNIQUE (tx_hash, log_index)
);
CREATE INDEX IF NOT EXISTS idx_plays_song ON plays(song_id);
CREATE INDEX IF NOT EXISTS idx_plays_block ON plays(block_number);

-- Per-source checkpoint
CREATE TABLE IF NOT EXISTS indexer_state (
    name TEXT PRIMARY KEY,
    last_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Events that exhausted their retry budget
CREATE TABLE IF NOT EXISTS indexer_poison (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tx_hash TEXT NOT NULL,
    log_index INTEGER NOT NULL,
    song_hash TEXT,
    reason TEXT NOT NULL,
    attempts INTEGER NOT NULL,
    block_number INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (tx_hash, log_index)
);
CREATE INDEX IF NOT EXISTS idx_poison_created ON indexer_poison(created_at);

-- Per-song economic strategy
CREATE TABLE IF NOT EXISTS strategy_configs (
    song_id TEXT PRIMARY KEY,
    strategy_id TEXT NOT NULL,
    params TEXT NOT NULL DEFAULT '{}',
    updated_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ts(unix: int | None) -> str:
    if unix is None:
        return _now()
    return datetime.fromtimestamp(unix, timezone.utc).isoformat()


class SQLiteLedgerStore:
    """SQLite-backed implementation of the LedgerStore protocol.

    A single connection is shared by every coroutine; all writes go through
    ``_lock`` so one transaction can never commit another's half-done work.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            path = str(Path(self._db_path).expanduser())
        else:
            path = self._db_path
        self._db = await aiosqlite.connect(path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Checkpoint ─────────────────────────────────────────

    async def get_checkpoint(self, name: str) -> int | None:
        async with self.db.execute(
            "SELECT last_block FROM indexer_state WHERE name=?", (name,)
        ) as cur:
            row = await cur.fetchone()
            return row["last_block"] if row else None

    async def set_checkpoint(self, name: str, block: int) -> None:
        async with self._lock:
            await self.db.execute(
                "INSERT INTO indexer_state (name, last_block, updated_at) VALUES (?, ?, ?)"
                " ON CONFLICT(name) DO UPDATE SET"
                " last_block=MAX(last_block, excluded.last_block),"
                " updated_at=excluded.updated_at",
                (name, block, _now()),
            )
            await self.db.commit()

    # ── Ledger ─────────────────────────────────────────────

    async def record_payment(self, event: PaymentEvent) -> WriteResult:
        async with self._lock:
            try:
                song_id = await self._resolve_song(event.song_hash)
                cur = await self.db.execute(
                    "INSERT INTO plays"
                    " (song_id, song_hash, listener_address, amount, protocol_fee,"
                    "  net_amount, payment_type, tx_hash, log_index, block_number, timestamp)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
                    " ON CONFLICT(tx_hash, log_index) DO NOTHING",
                    (
                        song_id, event.song_hash, event.listener,
                        format_amount(event.gross_amount),
                        format_amount(event.protocol_fee),
                        format_amount(event.net_amount),
                        event.payment_type.label, event.tx_hash, event.log_index,
                        event.block_number, _ts(event.timestamp),
                    ),
                )
                inserted = cur.rowcount == 1
                await cur.close()
                if inserted and song_id is not None:
                    await self._bump_song(song_id, event.net_amount)
                await self.db.commit()
            except BaseException:
                await self.db.rollback()
                raise
        return WriteResult(inserted=inserted, song_id=song_id)

    async def _resolve_song(self, song_hash: str) -> str | None:
        async with self.db.execute(
            "SELECT id FROM songs WHERE song_hash=?", (song_hash,)
        ) as cur:
            row = await cur.fetchone()
            return row["id"] if row else None

    async def _bump_song(self, song_id: str, net_amount: Decimal) -> None:
        async with self.db.execute(
            "SELECT earnings FROM songs WHERE id=?", (song_id,)
        ) as cur:
            row = await cur.fetchone()
        earnings = add_amounts(Decimal(row["earnings"]), net_amount)
        await self.db.execute(
            "UPDATE songs SET plays=plays+1, earnings=? WHERE id=?",
            (format_amount(earnings), song_id),
        )

    async def get_play(self, tx_hash: str, log_index: int) -> PlayRecord | None:
        async with self.db.execute(
            "SELECT * FROM plays WHERE tx_hash=? AND log_index=?",
            (tx_hash.lower(), log_index),
        ) as cur:
            row = await cur.fetchone()
            return _row_to_play(row) if row else None

    async def get_plays(self, song_id: str | None = None) -> list[PlayRecord]:
        if song_id is None:
            sql, params = "SELECT * FROM plays ORDER BY block_number, log_index", ()
        else:
            sql = "SELECT * FROM plays WHERE song_id=? ORDER BY block_number, log_index"
            params = (song_id,)
        async with self.db.execute(sql, params) as cur:
            return [_row_to_play(row) async for row in cur]

    async def count_plays(self) -> int:
        async with self.db.execute("SELECT COUNT(*) as c FROM plays") as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    # ── Songs ──────────────────────────────────────────────

    async def upsert_song(
        self, song_id: str, song_hash: str | None,
        title: str = "", artist_address: str = "",
    ) -> None:
        async with self._lock:
            await self.db.execute(
                "INSERT INTO songs (id, song_hash, title, artist_address) VALUES (?, ?, ?, ?)"
                " ON CONFLICT(id) DO UPDATE SET song_hash=excluded.song_hash,"
                " title=excluded.title, artist_address=excluded.artist_address",
                (song_id, song_hash.lower() if song_hash else None, title, artist_address),
            )
            await self.db.commit()

    async def get_song(self, song_id: str) -> SongRecord | None:
        async with self.db.execute("SELECT * FROM songs WHERE id=?", (song_id,)) as cur:
            row = await cur.fetchone()
            if not row:
                return None
            return SongRecord(
                id=row["id"],
                song_hash=row["song_hash"],
                title=row["title"],
                artist_address=row["artist_address"],
                plays=row["plays"],
                earnings=Decimal(row["earnings"]),
            )

    # ── Poison ─────────────────────────────────────────────

    async def upsert_poison(self, record: PoisonRecord) -> None:
        now = _now()
        async with self._lock:
            await self.db.execute(
                "INSERT INTO indexer_poison"
                " (tx_hash, log_index, song_hash, reason, attempts, block_number,"
                "  created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
                " ON CONFLICT(tx_hash, log_index) DO UPDATE SET"
                " reason=excluded.reason, attempts=excluded.attempts,"
                " block_number=COALESCE(excluded.block_number, block_number),"
                " updated_at=excluded.updated_at",
                (
                    record.tx_hash.lower(), record.log_index, record.song_hash,
                    record.reason, record.attempts, record.block_number, now, now,
                ),
            )
            await self.db.commit()

    async def bump_poison(
        self, tx_hash: str, log_index: int, song_hash: str | None,
        reason: str, block_number: int | None,
    ) -> None:
        now = _now()
        async with self._lock:
            await self.db.execute(
                "INSERT INTO indexer_poison"
                " (tx_hash, log_index, song_hash, reason, attempts, block_number,"
                "  created_at, updated_at)"
                " VALUES (?, ?, ?, ?, 1, ?, ?, ?)"
                " ON CONFLICT(tx_hash, log_index) DO UPDATE SET"
                " reason=excluded.reason, attempts=attempts+1,"
                " song_hash=COALESCE(excluded.song_hash, song_hash),"
                " block_number=COALESCE(excluded.block_number, block_number),"
                " updated_at=excluded.updated_at",
                (tx_hash.lower(), log_index, song_hash, reason, block_number, now, now),
            )
            await self.db.commit()

    async def get_poison(self, tx_hash: str, log_index: int) -> PoisonRecord | None:
        async with self.db.execute(
            "SELECT * FROM indexer_poison WHERE tx_hash=? AND log_index=?",
            (tx_hash.lower(), log_index),
        ) as cur:
            row = await cur.fetchone()
            return _row_to_poison(row) if row else None

    async def list_poison(
        self, limit: int = 100, oldest_first: bool = False
    ) -> list[PoisonRecord]:
        order = "ASC" if oldest_first else "DESC"
        async with self.db.execute(
            f"SELECT * FROM indexer_poison ORDER BY created_at {order}, id {order} LIMIT ?",
            (limit,),
        ) as cur:
            return [_row_to_poison(row) async for row in cur]

    async def count_poison(self) -> int:
        async with self.db.execute("SELECT COUNT(*) as c FROM indexer_poison") as cur:
            row = await cur.fetchone()
            return row["c"] if row else 0

    async def delete_poison(self, tx_hash: str, log_index: int) -> bool:
        async with self._lock:
            cur = await self.db.execute(
                "DELETE FROM indexer_poison WHERE tx_hash=? AND log_index=?",
                (tx_hash.lower(), log_index),
            )
            deleted = cur.rowcount > 0
            await cur.close()
            await self.db.commit()
        return deleted

    # ── Strategy configs ───────────────────────────────────

    async def save_strategy_config(self, config: StrategyConfig) -> None:
        config.updated_at = _now()
        async with self._lock:
            await self.db.execute(
                "INSERT INTO strategy_configs (song_id, strategy_id, params, updated_at)"
                " VALUES (?, ?, ?, ?)"
                " ON CONFLICT(song_id) DO UPDATE SET strategy_id=excluded.strategy_id,"
                " params=excluded.params, updated_at=excluded.updated_at",
                (
                    config.song_id, config.strategy_id,
                    json.dumps(config.params, sort_keys=True), config.updated_at,
                ),
            )
            await self.db.commit()

    async def get_strategy_config(self, song_id: str) -> StrategyConfig | None:
        async with self.db.execute(
            "SELECT * FROM strategy_configs WHERE song_id=?", (song_id,)
        ) as cur:
            row = await cur.fetchone()
            if not row:
                return None
            return StrategyConfig(
                song_id=row["song_id"],
                strategy_id=row["strategy_id"],
                params=json.loads(row["params"]),
                updated_at=row["updated_at"],
            )


def _row_to_play(row: aiosqlite.Row) -> PlayRecord:
    return PlayRecord(
        id=row["id"],
        song_id=row["song_id"],
        song_hash=row["song_hash"],
        listener_address=row["listener_address"],
        amount=Decimal(row["amount"]),
        protocol_fee=Decimal(row["protocol_fee"]),
        net_amount=Decimal(row["net_amount"]),
        payment_type=row["payment_type"],
        tx_hash=row["tx_hash"],
        log_index=row["log_index"],
        block_number=row["block_number"],
        timestamp=row["timestamp"],
    )


def _row_to_poison(row: aiosqlite.Row) -> PoisonRecord:
    return PoisonRecord(
        tx_hash=row["tx_hash"],
        log_index=row["log_index"],
        song_hash=row["song_hash"],
        reason=row["reason"],
        attempts=row["attempts"],
        block_number=row["block_number"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
