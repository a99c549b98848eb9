"""royalty_indexer - payment event indexer and economic strategy router."""

__version__ = "0.1.0"
