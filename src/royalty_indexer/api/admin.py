"""Administrative operations - poison inspection, replay and split previews."""

from __future__ import annotations

import logging

from royalty_indexer.chain.decoder import PAYMENT_RECORDED_TOPIC, decode_payment_log
from royalty_indexer.interfaces.source import ChainLogSource
from royalty_indexer.interfaces.store import LedgerStore
from royalty_indexer.metrics import IndexerMetrics
from royalty_indexer.models.events import PaymentType, RawLog, to_wei
from royalty_indexer.models.records import PoisonRecord, ReplayReport
from royalty_indexer.models.strategy import PaymentRoute
from royalty_indexer.pipeline.writer import LedgerWriter
from royalty_indexer.strategy.router import StrategyRouter

log = logging.getLogger(__name__)


class IndexerAdmin:
    """Operator actions that bypass normal checkpoint progression.

    Replays run logs through the same decode -> write path as the daemon.
    A success clears any poison row for that event; a failure records it
    in poison storage with one more attempt. The checkpoint is never
    touched.
    """

    def __init__(
        self,
        store: LedgerStore,
        source: ChainLogSource,
        writer: LedgerWriter,
        router_address: str,
        metrics: IndexerMetrics | None = None,
    ) -> None:
        self._store = store
        self._source = source
        self._writer = writer
        self._router_address = router_address.lower()
        self._metrics = metrics

    async def list_poison(self, limit: int = 100) -> list[PoisonRecord]:
        """Newest first."""
        return await self._store.list_poison(limit=limit)

    async def replay_event(self, tx_hash: str, log_index: int) -> ReplayReport:
        report = ReplayReport()
        await self._replay_one(tx_hash.lower(), log_index, report)
        return report

    async def replay_range(
        self, from_block: int, to_block: int, chunk_size: int = 2000,
    ) -> ReplayReport:
        if from_block > to_block:
            raise ValueError(f"invalid block range {from_block}..{to_block}")
        report = ReplayReport()
        start = from_block
        while start <= to_block:
            end = min(to_block, start + chunk_size - 1)
            logs = await self._source.get_logs(
                self._router_address, start, end, [PAYMENT_RECORDED_TOPIC],
            )
            for raw in logs:
                await self._replay_log(raw, report)
            start = end + 1
        log.info(
            "Replayed blocks %d..%d: %d scanned, %d ok, %d failed",
            from_block, to_block, report.scanned, report.succeeded, report.failed,
        )
        return report

    async def retry_poison(self, limit: int = 50) -> ReplayReport:
        """Replay the oldest poison rows."""
        report = ReplayReport()
        for record in await self._store.list_poison(limit=limit, oldest_first=True):
            await self._replay_one(record.tx_hash, record.log_index, report)
        log.info(
            "Poison retry: %d ok, %d still failing", report.succeeded, report.failed,
        )
        return report

    async def preview_play_splits(
        self, tx_hash: str, log_index: int, router: StrategyRouter,
    ) -> PaymentRoute:
        return await play_splits(self._store, tx_hash, log_index, router)

    # ── Internals ──────────────────────────────────────────

    async def _replay_one(self, tx_hash: str, log_index: int, report: ReplayReport) -> None:
        logs = await self._source.get_receipt_logs(tx_hash)
        if not logs:
            _fail(report, tx_hash, log_index, "receipt not found")
            return
        raw = next((l for l in logs if l.log_index == log_index), None)
        if raw is None:
            _fail(report, tx_hash, log_index, "log not in receipt")
            return
        if raw.address.lower() != self._router_address:
            _fail(report, tx_hash, log_index, "log not emitted by router")
            return
        await self._replay_log(raw, report)

    async def _replay_log(self, raw: RawLog, report: ReplayReport) -> None:
        report.scanned += 1
        try:
            event = decode_payment_log(raw)
            await self._writer.process_event(event)
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            song_hash = raw.topics[1] if len(raw.topics) > 1 else None
            await self._store.bump_poison(
                raw.tx_hash, raw.log_index, song_hash, reason, raw.block_number,
            )
            _fail(report, raw.tx_hash, raw.log_index, reason)
            return
        await self._store.delete_poison(raw.tx_hash, raw.log_index)
        report.succeeded += 1
        if self._metrics:
            self._metrics.record_event()


async def play_splits(
    store: LedgerStore, tx_hash: str, log_index: int, router: StrategyRouter,
) -> PaymentRoute:
    """Splits of a recorded play's net amount under the song's current strategy.

    Derived on demand and never stored; a strategy change since the
    payment changes the answer. Raises LookupError when the play, its
    song or the song's strategy is missing.
    """
    play = await store.get_play(tx_hash, log_index)
    if play is None:
        raise LookupError(f"no play recorded for {tx_hash}:{log_index}")
    if play.song_id is None:
        raise LookupError(f"play {tx_hash}:{log_index} has no catalog song")
    strategy = await router.load_song(store, play.song_id)
    if strategy is None:
        raise LookupError(f"song {play.song_id} has no strategy configured")
    net = to_wei(play.net_amount)
    return PaymentRoute(
        song_id=play.song_id,
        payer=play.listener_address,
        gross=to_wei(play.amount),
        protocol_fee=to_wei(play.protocol_fee),
        net=net,
        treasury=router.fee.treasury,
        splits=strategy.compute_splits(net, PaymentType.from_label(play.payment_type)),
    )


def _fail(report: ReplayReport, tx_hash: str, log_index: int, reason: str) -> None:
    report.failed += 1
    report.errors.append((tx_hash, log_index, reason))
    log.warning("Replay of %s:%d failed: %s", tx_hash, log_index, reason)
