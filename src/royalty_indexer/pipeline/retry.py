"""Retry/poison pipeline - bounded retry buffer with durable quarantine."""

from __future__ import annotations

import logging

from royalty_indexer.interfaces.store import LedgerStore
from royalty_indexer.metrics import IndexerMetrics
from royalty_indexer.models.events import PaymentEvent
from royalty_indexer.models.records import PoisonRecord, RetryItem, RetryPassReport
from royalty_indexer.pipeline.writer import LedgerWriter

log = logging.getLogger(__name__)


class RetryPipeline:
    """In-process retry buffer keyed by (tx_hash, log_index).

    Items live only in memory; a restart drops them. An item whose
    attempts exceed ``retry_limit`` is written to poison storage and
    never retried automatically again.
    """

    def __init__(
        self,
        writer: LedgerWriter,
        store: LedgerStore,
        metrics: IndexerMetrics,
        retry_limit: int = 3,
    ) -> None:
        self._writer = writer
        self._store = store
        self._metrics = metrics
        self._retry_limit = retry_limit
        self._queue: dict[tuple[str, int], RetryItem] = {}

    @property
    def depth(self) -> int:
        return len(self._queue)

    def items(self) -> list[RetryItem]:
        return list(self._queue.values())

    def enqueue(self, event: PaymentEvent, reason: str) -> RetryItem:
        """Record a processing failure for an event."""
        item = self._queue.get(event.key)
        if item is None:
            item = RetryItem(event=event, reason=reason, attempts=1)
            self._queue[event.key] = item
        else:
            item.attempts += 1
            item.reason = reason
        log.info(
            "Queued %s:%d for retry (attempt %d): %s",
            event.tx_hash, event.log_index, item.attempts, reason,
        )
        self._metrics.set_retry_queue_length(self.depth)
        return item

    async def run_pass(self) -> RetryPassReport:
        """Re-attempt every queued item once."""
        report = RetryPassReport()
        for key, item in list(self._queue.items()):
            report.attempted += 1
            try:
                await self._writer.process_event(item.event)
            except Exception as exc:
                item.attempts += 1
                item.reason = str(exc) or type(exc).__name__
                if item.attempts > self._retry_limit:
                    await self._poison(item)
                    del self._queue[key]
                    report.poisoned += 1
                continue
            del self._queue[key]
            report.resolved += 1
            self._metrics.record_event()

        report.remaining = self.depth
        self._metrics.set_retry_queue_length(self.depth)
        if report.attempted:
            log.info(
                "Retry pass: %d attempted, %d resolved, %d poisoned, %d remaining",
                report.attempted, report.resolved, report.poisoned, report.remaining,
            )
        return report

    async def _poison(self, item: RetryItem) -> None:
        event = item.event
        await self._store.upsert_poison(PoisonRecord(
            tx_hash=event.tx_hash,
            log_index=event.log_index,
            song_hash=event.song_hash,
            reason=item.reason,
            attempts=item.attempts,
            block_number=event.block_number,
        ))
        self._metrics.record_poison()
        log.error(
            "Poisoned %s:%d after %d attempts: %s",
            event.tx_hash, event.log_index, item.attempts, item.reason,
        )
