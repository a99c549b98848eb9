"""Protocol interfaces for all royalty_indexer components."""

from royalty_indexer.interfaces.source import ChainLogSource
from royalty_indexer.interfaces.store import LedgerStore
from royalty_indexer.interfaces.strategy import EconomicStrategy

__all__ = [
    "ChainLogSource",
    "LedgerStore",
    "EconomicStrategy",
]
