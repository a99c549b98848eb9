"""Main daemon loop - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal
import time

from royalty_indexer.api.admin import IndexerAdmin
from royalty_indexer.chain.decoder import PAYMENT_RECORDED_TOPIC, decode_payment_log
from royalty_indexer.chain.source import JsonRpcLogSource
from royalty_indexer.errors import DecodeError
from royalty_indexer.interfaces.source import ChainLogSource
from royalty_indexer.interfaces.store import LedgerStore
from royalty_indexer.metrics import IndexerMetrics
from royalty_indexer.models.config import IndexerConfig
from royalty_indexer.models.events import PaymentEvent, RawLog
from royalty_indexer.models.records import CycleReport
from royalty_indexer.pipeline.retry import RetryPipeline
from royalty_indexer.pipeline.writer import LedgerWriter
from royalty_indexer.storage.sqlite import SQLiteLedgerStore

log = logging.getLogger(__name__)


class IndexerDaemon:
    """Checkpointed PaymentRecorded indexer.

    Each cycle reads one chunk of blocks past the checkpoint, writes every
    decoded event (in parallel, each in its own transaction), runs one
    retry pass and only then advances the checkpoint. Cycles themselves
    are strictly sequential.
    """

    def __init__(
        self,
        cfg: IndexerConfig,
        source: ChainLogSource | None = None,
        store: LedgerStore | None = None,
        metrics: IndexerMetrics | None = None,
    ) -> None:
        self._cfg = cfg
        self._running = False
        self._address = cfg.router_address.lower()
        self._from_block: int | None = None

        # Core components
        self.source = source or JsonRpcLogSource(cfg.rpc_url, cfg.rpc_timeout)
        self.store = store or SQLiteLedgerStore(cfg.db_path)
        self.metrics = metrics or IndexerMetrics()
        self.writer = LedgerWriter(self.store, cfg.db_timeout)
        self.retry = RetryPipeline(self.writer, self.store, self.metrics, cfg.retry_limit)
        self.admin = IndexerAdmin(
            self.store, self.source, self.writer, cfg.router_address, self.metrics,
        )

    @property
    def next_block(self) -> int | None:
        return self._from_block

    async def start(self) -> None:
        """Initialize components and run the main loop."""
        log.info("Starting royalty_indexer daemon")
        log.info("  Router: %s", self._cfg.router_address)
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  DB: %s", self._cfg.db_path)
        log.info(
            "  Chunk: %d blocks, confirmations: %d, retry limit: %d",
            self._cfg.chunk_size, self._cfg.confirmations, self._cfg.retry_limit,
        )

        await self.store.initialize()
        self.metrics.serve(self._cfg.metrics_port)

        self._running = True
        try:
            await self._main_loop()
        finally:
            if self.retry.depth:
                log.warning(
                    "Dropping %d queued retries; they will be re-read from the checkpoint",
                    self.retry.depth,
                )
            await self.source.close()
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop after the in-flight cycle."""
        log.info("Stop requested")
        self._running = False

    async def _main_loop(self) -> None:
        while self._running:
            try:
                report = await self.run_cycle()
                if report is None:
                    await asyncio.sleep(self._cfg.poll_interval)
            except asyncio.CancelledError:
                log.info("Main loop cancelled")
                break
            except Exception as exc:
                log.error("Cycle error: %s", exc, exc_info=True)
                await asyncio.sleep(self._cfg.error_backoff)

    async def run_cycle(self) -> CycleReport | None:
        """Process one chunk of blocks. Returns None when caught up with head."""
        started = time.monotonic()
        chain_head = await self.source.get_head()
        safe_head = chain_head - self._cfg.confirmations

        if self._from_block is None:
            self._from_block = await self._resolve_start_block(safe_head)
        from_block = self._from_block
        if from_block > safe_head:
            return None

        to_block = min(safe_head, from_block + self._cfg.chunk_size)
        report = CycleReport(from_block=from_block, to_block=to_block, head=chain_head)

        # 1. Fetch and decode
        logs = await self.source.get_logs(
            self._address, from_block, to_block, [PAYMENT_RECORDED_TOPIC],
        )
        report.fetched = len(logs)
        events: list[PaymentEvent] = []
        for raw in logs:
            try:
                events.append(decode_payment_log(raw))
            except DecodeError as exc:
                await self._quarantine_undecodable(raw, exc)
                report.decode_failures += 1
                report.poisoned += 1
        report.decoded = len(events)

        # 2. Write, bounded concurrency
        await self._write_events(events, report)

        # 3. One pass over the retry buffer
        retry_report = await self.retry.run_pass()
        report.retried_ok = retry_report.resolved
        report.poisoned += retry_report.poisoned

        # 4. Advance checkpoint
        try:
            await self.store.set_checkpoint(self._cfg.source_name, to_block)
        except Exception as exc:
            log.warning("Checkpoint persist failed at block %d: %s", to_block, exc)

        self.metrics.set_lag(chain_head - to_block)
        self._from_block = to_block + 1
        report.duration_ms = int((time.monotonic() - started) * 1000)

        log.info(
            "Blocks %d..%d: %d logs, %d written, %d duplicates, %d queued, %d poisoned in %dms",
            from_block, to_block, report.fetched, report.written, report.duplicates,
            report.queued_for_retry, report.poisoned, report.duration_ms,
        )
        return report

    async def _resolve_start_block(self, safe_head: int) -> int:
        checkpoint = await self.store.get_checkpoint(self._cfg.source_name)
        if checkpoint is not None:
            log.info("Resuming from checkpoint: block %d", checkpoint)
            return checkpoint + 1
        if self._cfg.start_block is not None:
            log.info("No checkpoint; starting at configured block %d", self._cfg.start_block)
            return self._cfg.start_block
        log.info("No checkpoint; starting at head %d", safe_head)
        return safe_head

    async def _write_events(self, events: list[PaymentEvent], report: CycleReport) -> None:
        semaphore = asyncio.Semaphore(self._cfg.max_concurrency)

        async def _write_one(event: PaymentEvent):
            async with semaphore:
                return await self.writer.process_event(event)

        results = await asyncio.gather(
            *(_write_one(e) for e in events), return_exceptions=True,
        )
        for event, result in zip(events, results):
            if isinstance(result, BaseException):
                self.retry.enqueue(event, str(result) or type(result).__name__)
                report.queued_for_retry += 1
            elif result.inserted:
                report.written += 1
                self.metrics.record_event()
            else:
                report.duplicates += 1

    async def _quarantine_undecodable(self, raw: RawLog, exc: DecodeError) -> None:
        log.error("Undecodable log %s:%d: %s", raw.tx_hash, raw.log_index, exc)
        await self.store.bump_poison(
            raw.tx_hash,
            raw.log_index,
            raw.topics[1] if len(raw.topics) > 1 else None,
            f"decode: {exc}",
            raw.block_number,
        )
        self.metrics.record_decode_failure()
        self.metrics.record_poison()


async def run_daemon(cfg: IndexerConfig) -> None:
    """Entry point for running the daemon."""
    daemon = IndexerDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
