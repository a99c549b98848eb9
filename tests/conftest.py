"""Shared fixtures for royalty_indexer tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from royalty_indexer.chain.decoder import PAYMENT_RECORDED_TOPIC
from royalty_indexer.daemon import IndexerDaemon
from royalty_indexer.metrics import IndexerMetrics
from royalty_indexer.models.config import IndexerConfig
from royalty_indexer.pipeline.retry import RetryPipeline
from royalty_indexer.pipeline.writer import LedgerWriter

from tests.factories import ROUTER, song_hash
from tests.mocks import FaultyStore, MockLogSource

ARTIST = "0x" + "a1" * 20
PRODUCER = "0x" + "b2" * 20
PLATFORM = "0x" + "c3" * 20
TREASURY = "0x" + "d4" * 20

ROYALTY_TABLE = [
    {"recipient": ARTIST, "basis_points": 6000, "role": "artist"},
    {"recipient": PRODUCER, "basis_points": 3000, "role": "producer"},
    {"recipient": PLATFORM, "basis_points": 1000, "role": "platform"},
]


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add indexer info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Router"] = ROUTER
    meta["Ledger"] = "SQLite (in-memory)"


def pytest_html_results_summary(prefix, summary, postfix):
    """Show the indexed contract and event topic in the report summary."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Indexed contract</strong><br/>"
        f"Router: {ROUTER}<br/>"
        f"PaymentRecorded topic: {PAYMENT_RECORDED_TOPIC}"
        "</div>"
    )


def make_test_config(**overrides) -> IndexerConfig:
    """Build an IndexerConfig suitable for testing."""
    defaults = dict(
        poll_interval=0,
        error_backoff=0,
        chunk_size=2000,
        retry_limit=3,
        rpc_url="http://127.0.0.1:8545",
        router_address=ROUTER,
        db_path=":memory:",
        db_timeout=5.0,
        metrics_port=0,
    )
    defaults.update(overrides)
    return IndexerConfig(**defaults)


def use_writer(daemon: IndexerDaemon, writer: LedgerWriter) -> None:
    """Swap the daemon's writer, rebuilding the retry pipeline around it."""
    daemon.writer = writer
    daemon.retry = RetryPipeline(writer, daemon.store, daemon.metrics, daemon._cfg.retry_limit)


@pytest.fixture
def test_config():
    """Default IndexerConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory ledger store."""
    s = FaultyStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
async def catalog(store):
    """Store seeded with one registered song."""
    await store.upsert_song("song-1", song_hash("song-1"), title="First Light", artist_address=ARTIST)
    return store


@pytest.fixture
def source():
    return MockLogSource(head=100)


@pytest.fixture
def metrics():
    return IndexerMetrics()


@pytest.fixture
def daemon(test_config, store, source, metrics):
    """IndexerDaemon wired to the in-memory store and mock chain."""
    return IndexerDaemon(test_config, source=source, store=store, metrics=metrics)
