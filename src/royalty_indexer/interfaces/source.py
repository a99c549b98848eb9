"""ChainLogSource protocol - reads confirmed logs from an EVM node."""

from __future__ import annotations

from typing import Protocol, Sequence

from royalty_indexer.models.events import RawLog


class ChainLogSource(Protocol):
    """Reads confirmed event logs for a contract address over a block range."""

    async def get_head(self) -> int:
        """Current chain head block number."""
        ...

    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: Sequence[str],
    ) -> list[RawLog]:
        """Logs in [from_block, to_block] ordered by (block_number, log_index).

        Returns an empty list when from_block > to_block.
        """
        ...

    async def get_receipt_logs(self, tx_hash: str) -> list[RawLog]:
        """All logs of a mined transaction, empty if the receipt is unknown."""
        ...

    async def close(self) -> None:
        ...
