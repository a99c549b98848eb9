"""Full pipeline: chain logs -> ledger rows, aggregates and checkpoint."""

from __future__ import annotations

from decimal import Decimal

from royalty_indexer.daemon import IndexerDaemon
from royalty_indexer.models.strategy import StrategyConfig

from tests.conftest import ROYALTY_TABLE, make_test_config
from tests.factories import make_raw_log, wei


async def test_mixed_range_indexes_every_log(catalog, source, metrics):
    await catalog.save_strategy_config(StrategyConfig(
        song_id="song-1", strategy_id="pay-per-stream-v1",
        params={"min_payment": 1000, "royalties": ROYALTY_TABLE},
    ))
    source.head = 105
    logs = [
        make_raw_log(net=wei("1"), fee=wei("0.01"), gross=wei("1.01"), block_number=100),
        make_raw_log(net=wei("2.5"), fee=wei("0.025"), gross=wei("2.525"), block_number=102),
        make_raw_log(net=wei("0.25"), fee=0, gross=wei("0.25"), block_number=102, log_index=3),
        make_raw_log(song="unregistered", net=wei("9"), block_number=104),
    ]
    source.add(*logs)
    daemon = IndexerDaemon(
        make_test_config(start_block=100), source=source, store=catalog, metrics=metrics,
    )

    report = await daemon.run_cycle()

    assert report.to_block == 105
    assert report.written == 4
    plays = await catalog.get_plays()
    assert len(plays) == 4
    assert [p.song_id for p in plays].count(None) == 1
    song = await catalog.get_song("song-1")
    assert song.plays == 3
    assert song.earnings == Decimal("3.75")
    assert await catalog.get_checkpoint("router") == 105
    assert await catalog.count_poison() == 0
    assert daemon.retry.depth == 0
    assert metrics.sample("indexer_events_total") == 4
    assert metrics.sample("indexer_lag_blocks") == 0

    # Replaying the same range changes nothing.
    replay = await daemon.admin.replay_range(100, 105)
    assert replay.succeeded == 4
    assert len(await catalog.get_plays()) == 4
    assert (await catalog.get_song("song-1")).earnings == Decimal("3.75")
