"""Ledger writer - persists one decoded payment event."""

from __future__ import annotations

import asyncio
import logging

from royalty_indexer.interfaces.store import LedgerStore
from royalty_indexer.models.events import PaymentEvent
from royalty_indexer.models.records import WriteResult

log = logging.getLogger(__name__)


class LedgerWriter:
    """Writes PaymentEvents into the ledger store.

    The store does the transactional work (resolve song, insert play,
    bump aggregates). This wrapper bounds each write by a timeout so a
    stuck database surfaces as a per-event failure the retry pipeline
    can pick up.
    """

    def __init__(self, store: LedgerStore, timeout: float = 10.0) -> None:
        self._store = store
        self._timeout = timeout

    async def process_event(self, event: PaymentEvent) -> WriteResult:
        result = await asyncio.wait_for(
            self._store.record_payment(event), timeout=self._timeout,
        )
        if not result.inserted:
            log.debug("Duplicate event %s:%d ignored", event.tx_hash, event.log_index)
        elif result.song_id is None:
            log.warning(
                "Song %s not in catalog; play %s:%d stored without song",
                event.song_hash, event.tx_hash, event.log_index,
            )
        else:
            log.debug(
                "Recorded play %s:%d for song %s (+%s)",
                event.tx_hash, event.log_index, result.song_id, event.net_amount,
            )
        return result
