"""Operator CLI commands against a file-backed ledger."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from royalty_indexer.cli import cli

from tests.conftest import ARTIST, ROYALTY_TABLE
from tests.factories import tx


@pytest.fixture
def invoke(tmp_path):
    runner = CliRunner()
    env = {
        "ROYALTY_INDEXER_DB_PATH": str(tmp_path / "ledger.db"),
        "ROYALTY_INDEXER_ROUTER_ADDRESS": None,
        "ROYALTY_INDEXER_METRICS_PORT": "0",
    }

    def _invoke(*args):
        return runner.invoke(cli, list(args), env=env, catch_exceptions=False)

    return _invoke


def test_status_on_fresh_ledger(invoke):
    result = invoke("status")
    assert result.exit_code == 0
    assert "Checkpoint:  (none)" in result.output
    assert "Plays:       0" in result.output
    assert "Router:      (not set)" in result.output


def test_run_requires_router_address(invoke):
    result = invoke("run")
    assert result.exit_code == 1
    assert "router_address is required" in result.output


def test_strategy_list(invoke):
    result = invoke("strategy", "list")
    assert result.exit_code == 0
    assert result.output.split() == [
        "dutch-auction-v1",
        "dynamic-pricing-v1",
        "gift-economy-v1",
        "patronage-v1",
        "pay-per-stream-v1",
    ]


def test_strategy_set_then_show(invoke):
    params = json.dumps({"min_payment": 1000, "royalties": ROYALTY_TABLE})

    result = invoke("strategy", "set", "song-1", "pay-per-stream-v1", "--params", params)
    assert result.exit_code == 0
    assert "Song song-1 -> pay-per-stream-v1" in result.output

    shown = invoke("strategy", "show", "song-1")
    assert shown.exit_code == 0
    assert "Strategy:  pay-per-stream-v1" in shown.output
    assert '"min_payment": 1000' in shown.output


def test_strategy_set_rejects_bad_table(invoke):
    params = json.dumps({"royalties": ROYALTY_TABLE[:2]})
    result = invoke("strategy", "set", "song-1", "pay-per-stream-v1", "--params", params)
    assert result.exit_code == 1
    assert "expected 10000bp" in result.output

    assert invoke("strategy", "show", "song-1").exit_code == 1


def test_strategy_set_rejects_unknown_id(invoke):
    result = invoke("strategy", "set", "song-1", "quadratic-v1")
    assert result.exit_code == 1
    assert "unknown strategy" in result.output


def test_strategy_preview(invoke):
    invoke("strategy", "set", "song-1", "patronage-v1",
           "--params", json.dumps({"artist": ARTIST, "subscription_fee": 500}))

    result = invoke("strategy", "preview", "song-1", "10000", "--type", "patronage")

    assert result.exit_code == 0
    assert "Net:           9900 wei" in result.output
    assert ARTIST in result.output


def test_preview_unconfigured_song(invoke):
    result = invoke("strategy", "preview", "song-9", "100")
    assert result.exit_code == 1


def test_poison_list_empty(invoke):
    result = invoke("poison", "list")
    assert result.exit_code == 0
    assert "No poisoned events." in result.output


def test_splits_for_unknown_play(invoke):
    result = invoke("splits", tx(1), "0")
    assert result.exit_code == 1
    assert "no play recorded" in result.output


def test_replay_rejects_inverted_range(invoke):
    result = CliRunner().invoke(cli, ["replay", "10", "5"])
    assert result.exit_code == 2


def test_bad_config_file_exits_cleanly(tmp_path):
    path = tmp_path / "indexer.toml"
    path.write_text('[storage]\ndb_timeout = "slow"\n')

    result = CliRunner().invoke(cli, ["-c", str(path), "status"])

    assert result.exit_code == 1
    assert "invalid configuration" in result.output
    assert "storage.db_timeout must be a number" in result.output


def test_strategy_set_rejects_malformed_windows(invoke):
    params = json.dumps({"artist": ARTIST, "base_price": 1, "max_price": 2, "discount_windows": 5})
    result = invoke("strategy", "set", "song-1", "dynamic-pricing-v1", "--params", params)
    assert result.exit_code == 1
    assert "discount_windows must be a list" in result.output
