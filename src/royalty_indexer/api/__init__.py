"""API components - administrative operations."""

from royalty_indexer.api.admin import IndexerAdmin

__all__ = ["IndexerAdmin"]
