"""Administrative poison handling, replay and split previews."""

from __future__ import annotations

import pytest

from royalty_indexer.api.admin import IndexerAdmin
from royalty_indexer.models.records import PoisonRecord
from royalty_indexer.models.strategy import StrategyConfig
from royalty_indexer.strategy.base import ProtocolFee
from royalty_indexer.strategy.router import StrategyRouter

from tests.conftest import ARTIST, PLATFORM, PRODUCER, ROYALTY_TABLE
from tests.factories import ROUTER, make_raw_log, tx, wei
from tests.mocks import FlakyWriter


def _admin(store, source, failures=None) -> tuple[IndexerAdmin, FlakyWriter]:
    writer = FlakyWriter(store, failures)
    return IndexerAdmin(store, source, writer, ROUTER), writer


async def _poison(store, raw, attempts=4, reason="db unavailable"):
    await store.upsert_poison(PoisonRecord(
        tx_hash=raw.tx_hash, log_index=raw.log_index, song_hash=raw.topics[1],
        reason=reason, attempts=attempts, block_number=raw.block_number,
    ))


async def test_list_poison_newest_first(catalog, source):
    admin, _ = _admin(catalog, source)
    for i in range(3):
        await _poison(catalog, make_raw_log(block_number=100 + i), reason=f"r{i}")

    rows = await admin.list_poison()

    assert [r.reason for r in rows] == ["r2", "r1", "r0"]
    assert rows[0].attempts == 4


async def test_replay_event_success_clears_poison(catalog, source):
    raw = make_raw_log(block_number=100)
    source.add(raw)
    await _poison(catalog, raw)
    admin, _ = _admin(catalog, source)

    report = await admin.replay_event(raw.tx_hash, raw.log_index)

    assert (report.scanned, report.succeeded, report.failed) == (1, 1, 0)
    assert await catalog.get_poison(raw.tx_hash, raw.log_index) is None
    assert (await catalog.get_song("song-1")).plays == 1


async def test_replay_event_failure_bumps_attempts(catalog, source):
    raw = make_raw_log(block_number=100)
    source.add(raw)
    await _poison(catalog, raw, attempts=4)
    admin, _ = _admin(catalog, source, {raw.key: None})

    report = await admin.replay_event(raw.tx_hash, raw.log_index)

    assert report.failed == 1
    poison = await catalog.get_poison(raw.tx_hash, raw.log_index)
    assert poison.attempts == 5
    assert poison.reason == "db unavailable (attempt 1)"


async def test_replay_event_unknown_transaction(catalog, source):
    admin, _ = _admin(catalog, source)

    report = await admin.replay_event(tx(999), 0)

    assert report.failed == 1
    assert report.errors == [(tx(999), 0, "receipt not found")]
    assert await catalog.count_poison() == 0


async def test_replay_event_ignores_logs_from_other_contracts(catalog, source):
    raw = make_raw_log(net=wei("1000"), block_number=100, address="0x" + "99" * 20)
    source.add(raw)
    admin, writer = _admin(catalog, source)

    report = await admin.replay_event(raw.tx_hash, raw.log_index)

    assert report.succeeded == 0
    assert report.errors == [(raw.tx_hash, raw.log_index, "log not emitted by router")]
    assert writer.calls == []
    assert await catalog.count_plays() == 0
    assert (await catalog.get_song("song-1")).plays == 0


async def test_replay_range_rejects_inverted_range(catalog, source):
    admin, _ = _admin(catalog, source)
    with pytest.raises(ValueError):
        await admin.replay_range(10, 9)


async def test_replay_range_walks_chunks_without_checkpoint(catalog, source):
    await catalog.set_checkpoint("router", 50)
    good = make_raw_log(block_number=101)
    failing = make_raw_log(block_number=104)
    source.add(good, failing)
    admin, _ = _admin(catalog, source, {failing.key: None})

    report = await admin.replay_range(100, 105, chunk_size=2)

    assert source.get_logs_calls == [(100, 101), (102, 103), (104, 105)]
    assert (report.scanned, report.succeeded, report.failed) == (2, 1, 1)
    assert (await catalog.get_poison(failing.tx_hash, 0)).attempts == 1
    assert await catalog.get_checkpoint("router") == 50


async def test_retry_poison_oldest_first(catalog, source):
    older = make_raw_log(block_number=100)
    newer = make_raw_log(block_number=101)
    source.add(older, newer)
    await _poison(catalog, older)
    await _poison(catalog, newer)
    admin, _ = _admin(catalog, source)

    report = await admin.retry_poison(limit=1)

    assert report.succeeded == 1
    assert source.receipt_calls == [older.tx_hash]
    assert await catalog.get_poison(older.tx_hash, 0) is None
    assert await catalog.get_poison(newer.tx_hash, 0) is not None


async def test_preview_play_splits_uses_current_strategy(catalog, source):
    raw = make_raw_log(gross=wei("1.01"), fee=wei("0.01"), net=wei("1"), block_number=100)
    source.add(raw)
    admin, _ = _admin(catalog, source)
    await admin.replay_event(raw.tx_hash, 0)
    await catalog.save_strategy_config(StrategyConfig(
        song_id="song-1", strategy_id="pay-per-stream-v1", params={"royalties": ROYALTY_TABLE},
    ))
    router = StrategyRouter(ProtocolFee(100))

    route = await admin.preview_play_splits(raw.tx_hash, 0, router)

    assert route.net == wei("1")
    assert [(s.recipient, s.amount) for s in route.splits] == [
        (ARTIST, wei("0.6")), (PRODUCER, wei("0.3")), (PLATFORM, wei("0.1")),
    ]


async def test_preview_play_splits_requires_strategy(catalog, source):
    raw = make_raw_log(block_number=100)
    source.add(raw)
    admin, _ = _admin(catalog, source)
    await admin.replay_event(raw.tx_hash, 0)

    with pytest.raises(LookupError, match="no strategy"):
        await admin.preview_play_splits(raw.tx_hash, 0, StrategyRouter(ProtocolFee(100)))
