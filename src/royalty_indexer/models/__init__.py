"""Data models for the royalty_indexer."""

from royalty_indexer.models.events import PaymentEvent, PaymentType, RawLog
from royalty_indexer.models.records import (
    CycleReport,
    PlayRecord,
    PoisonRecord,
    ReplayReport,
    RetryItem,
    RetryPassReport,
    SongRecord,
    WriteResult,
)
from royalty_indexer.models.config import IndexerConfig, StrategySettings
from royalty_indexer.models.strategy import (
    BASIS_POINTS,
    PaymentRoute,
    RoyaltyShare,
    Split,
    StrategyConfig,
)

__all__ = [
    "PaymentEvent", "PaymentType", "RawLog",
    "CycleReport", "PlayRecord", "PoisonRecord", "ReplayReport",
    "RetryItem", "RetryPassReport", "SongRecord", "WriteResult",
    "IndexerConfig", "StrategySettings",
    "BASIS_POINTS", "PaymentRoute", "RoyaltyShare", "Split", "StrategyConfig",
]
