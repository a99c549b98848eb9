"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from royalty_indexer.errors import ConfigError
from royalty_indexer.models.config import IndexerConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "ROYALTY_INDEXER_",
) -> IndexerConfig:
    """Load indexer configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (ROYALTY_INDEXER_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from IndexerConfig

    Values are not validated here; call ``IndexerConfig.validate()``.
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                try:
                    raw = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigError([f"{p}: {e}"]) from e

    cfg = IndexerConfig()

    # ── Indexer section ────────────────────────────────────
    indexer = raw.get("indexer", {})
    if (v := _number(indexer, "indexer", "poll_interval", int)) is not None:
        cfg.poll_interval = v
    if (v := _number(indexer, "indexer", "error_backoff", int)) is not None:
        cfg.error_backoff = v
    if (v := _number(indexer, "indexer", "chunk_size", int)) is not None:
        cfg.chunk_size = v
    if (v := _number(indexer, "indexer", "start_block", int)) is not None:
        cfg.start_block = v
    if (v := _number(indexer, "indexer", "confirmations", int)) is not None:
        cfg.confirmations = v
    if (v := _number(indexer, "indexer", "retry_limit", int)) is not None:
        cfg.retry_limit = v
    if (v := _number(indexer, "indexer", "max_concurrency", int)) is not None:
        cfg.max_concurrency = v
    if v := indexer.get("source_name"):
        cfg.source_name = str(v)
    if v := indexer.get("log_level"):
        cfg.log_level = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := chain.get("router_address"):
        cfg.router_address = str(v)
    if (v := _number(chain, "chain", "rpc_timeout", float)) is not None:
        cfg.rpc_timeout = v

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)
    if (v := _number(storage, "storage", "db_timeout", float)) is not None:
        cfg.db_timeout = v

    # ── Metrics section ────────────────────────────────────
    metrics = raw.get("metrics", {})
    if (v := _number(metrics, "metrics", "port", int)) is not None:
        cfg.metrics_port = v

    # ── Strategy section ───────────────────────────────────
    strategy = raw.get("strategy", {})
    if (v := _number(strategy, "strategy", "protocol_fee_bps", int)) is not None:
        cfg.strategy.protocol_fee_bps = v
    if v := strategy.get("treasury"):
        cfg.strategy.treasury = str(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if router := os.environ.get(f"{env_prefix}ROUTER_ADDRESS"):
        cfg.router_address = router
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if (n := _int_env(f"{env_prefix}CHUNK_SIZE")) is not None:
        cfg.chunk_size = n
    if (n := _int_env(f"{env_prefix}START_BLOCK")) is not None:
        cfg.start_block = n
    if (n := _int_env(f"{env_prefix}RETRY_LIMIT")) is not None:
        cfg.retry_limit = n
    if (n := _int_env(f"{env_prefix}METRICS_PORT")) is not None:
        cfg.metrics_port = n
    if (n := _int_env(f"{env_prefix}CONFIRMATIONS")) is not None:
        cfg.confirmations = n

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _int_env(name: str) -> int | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError([f"{name} must be an integer, got {value!r}"]) from e


def _number(section: dict, section_name: str, key: str, cast):
    value = section.get(key)
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(
            [f"{section_name}.{key} must be a number, got {value!r}"]
        ) from e
