"""Configuration models for the indexer."""

from __future__ import annotations

from dataclasses import dataclass, field

from eth_utils import is_hex_address

from royalty_indexer.errors import ConfigError

MAX_PROTOCOL_FEE_BPS = 1_000  # hard cap: 10%


@dataclass
class StrategySettings:
    """Protocol-level economics shared by every strategy."""

    protocol_fee_bps: int = 100  # 1%
    treasury: str = ""


@dataclass
class IndexerConfig:
    """Complete indexer configuration."""

    # Loop
    poll_interval: int = 1  # seconds to wait when caught up with head
    error_backoff: int = 3  # seconds after a failed cycle
    chunk_size: int = 2000  # blocks per eth_getLogs range
    start_block: int | None = None  # first-run override
    confirmations: int = 0  # blocks held back from head
    retry_limit: int = 3
    max_concurrency: int = 4  # parallel ledger writes within one cycle
    source_name: str = "router"  # checkpoint key
    log_level: str = "info"

    # Chain
    rpc_url: str = "http://localhost:8545"
    router_address: str = ""
    rpc_timeout: float = 20.0

    # Storage
    db_path: str = "~/.royalty_indexer/ledger.db"
    db_timeout: float = 10.0

    # Metrics
    metrics_port: int = 9400  # 0 disables the endpoint

    strategy: StrategySettings = field(default_factory=StrategySettings)

    def validate(self) -> None:
        """Raise ConfigError listing every problem found."""
        problems: list[str] = []
        if not self.rpc_url:
            problems.append("rpc_url is required")
        if not self.router_address:
            problems.append("router_address is required")
        elif not is_hex_address(self.router_address):
            problems.append(f"router_address is not a 20-byte hex address: {self.router_address}")
        if not self.db_path:
            problems.append("db_path is required")
        if self.chunk_size <= 0:
            problems.append("chunk_size must be positive")
        if self.start_block is not None and self.start_block < 0:
            problems.append("start_block must not be negative")
        if self.confirmations < 0:
            problems.append("confirmations must not be negative")
        if self.retry_limit < 0:
            problems.append("retry_limit must not be negative")
        if self.max_concurrency <= 0:
            problems.append("max_concurrency must be positive")
        if not 0 <= self.metrics_port <= 65535:
            problems.append("metrics_port must be between 0 and 65535")
        if not 0 <= self.strategy.protocol_fee_bps <= MAX_PROTOCOL_FEE_BPS:
            problems.append(
                f"protocol_fee_bps must be between 0 and {MAX_PROTOCOL_FEE_BPS}"
            )
        if problems:
            raise ConfigError(problems)
