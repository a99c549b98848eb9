"""Configuration layering and validation."""

from __future__ import annotations

import pytest

from royalty_indexer.config import load_config
from royalty_indexer.errors import ConfigError

from tests.factories import ROUTER

TOML = f"""
[indexer]
chunk_size = 500
start_block = 0
confirmations = 2
retry_limit = 5

[chain]
rpc_url = "https://rpc.example"
router_address = "{ROUTER}"

[storage]
db_path = "/tmp/ledger.db"

[metrics]
port = 0

[strategy]
protocol_fee_bps = 250
treasury = "0x{'d4' * 20}"
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("RPC_URL", "ROUTER_ADDRESS", "DB_PATH", "CHUNK_SIZE", "START_BLOCK",
                "RETRY_LIMIT", "METRICS_PORT", "CONFIRMATIONS"):
        monkeypatch.delenv(f"ROYALTY_INDEXER_{key}", raising=False)


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg.chunk_size == 2000
    assert cfg.retry_limit == 3
    assert cfg.metrics_port == 9400
    assert cfg.start_block is None
    assert cfg.source_name == "router"


def test_toml_values(tmp_path):
    path = tmp_path / "indexer.toml"
    path.write_text(TOML)

    cfg = load_config(path)

    assert cfg.chunk_size == 500
    assert cfg.start_block == 0
    assert cfg.confirmations == 2
    assert cfg.retry_limit == 5
    assert cfg.rpc_url == "https://rpc.example"
    assert cfg.router_address == ROUTER
    assert cfg.metrics_port == 0
    assert cfg.strategy.protocol_fee_bps == 250
    cfg.validate()


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "indexer.toml"
    path.write_text(TOML)
    monkeypatch.setenv("ROYALTY_INDEXER_CHUNK_SIZE", "50")
    monkeypatch.setenv("ROYALTY_INDEXER_RPC_URL", "http://other:8545")

    cfg = load_config(path)

    assert cfg.chunk_size == 50
    assert cfg.rpc_url == "http://other:8545"


def test_bad_env_integer(monkeypatch):
    monkeypatch.setenv("ROYALTY_INDEXER_RETRY_LIMIT", "three")
    with pytest.raises(ConfigError, match="RETRY_LIMIT"):
        load_config(None)


def test_validate_reports_every_problem():
    cfg = load_config(None)
    cfg.chunk_size = 0
    cfg.metrics_port = 70000

    with pytest.raises(ConfigError) as exc_info:
        cfg.validate()

    problems = exc_info.value.problems
    assert "router_address is required" in problems
    assert "chunk_size must be positive" in problems
    assert "metrics_port must be between 0 and 65535" in problems


def test_validate_rejects_fee_above_cap():
    cfg = load_config(None)
    cfg.router_address = ROUTER
    cfg.strategy.protocol_fee_bps = 1_001
    with pytest.raises(ConfigError, match="protocol_fee_bps"):
        cfg.validate()


def test_validate_rejects_malformed_router():
    cfg = load_config(None)
    cfg.router_address = "0x1234"
    with pytest.raises(ConfigError, match="20-byte"):
        cfg.validate()


def test_non_numeric_toml_value(tmp_path):
    path = tmp_path / "indexer.toml"
    path.write_text('[indexer]\nchunk_size = "lots"\n')

    with pytest.raises(ConfigError) as exc_info:
        load_config(path)

    assert exc_info.value.problems == ["indexer.chunk_size must be a number, got 'lots'"]
