"""JSON-RPC log source - reads blocks and logs from an EVM node over httpx."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Sequence

import httpx

from royalty_indexer.errors import ChainSourceError
from royalty_indexer.models.events import RawLog

log = logging.getLogger(__name__)


class JsonRpcLogSource:
    """ChainLogSource backed by a plain JSON-RPC endpoint.

    No inline retry: any failure surfaces as ChainSourceError and the
    daemon's cycle backoff handles it.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._ids = itertools.count(1)

    async def get_head(self) -> int:
        return _hex_int(await self._call("eth_blockNumber", []))

    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: Sequence[str],
    ) -> list[RawLog]:
        if from_block > to_block:
            return []
        params = [{
            "address": address,
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
            "topics": list(topics),
        }]
        result = await self._call("eth_getLogs", params)
        logs = [_parse_log(entry) for entry in result or []]
        logs.sort(key=lambda l: (l.block_number, l.log_index))
        log.debug("eth_getLogs %d..%d -> %d logs", from_block, to_block, len(logs))
        return logs

    async def get_receipt_logs(self, tx_hash: str) -> list[RawLog]:
        receipt = await self._call("eth_getTransactionReceipt", [tx_hash])
        if not receipt:
            return []
        return [_parse_log(entry) for entry in receipt.get("logs", [])]

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise ChainSourceError(f"{method} failed: {e}", method=method) from e
        except ValueError as e:
            raise ChainSourceError(f"{method} returned invalid JSON", method=method) from e

        if data.get("error"):
            err = data["error"]
            raise ChainSourceError(
                f"RPC error {err.get('code')}: {err.get('message')}",
                method=method,
                code=err.get("code"),
            )
        return data.get("result")


def _hex_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


def _parse_log(entry: dict[str, Any]) -> RawLog:
    ts = entry.get("blockTimestamp")
    return RawLog(
        address=entry["address"].lower(),
        topics=tuple(t.lower() for t in entry.get("topics", [])),
        data=entry.get("data", "0x"),
        block_number=_hex_int(entry["blockNumber"]),
        tx_hash=entry["transactionHash"].lower(),
        log_index=_hex_int(entry["logIndex"]),
        block_timestamp=_hex_int(ts) if ts is not None else None,
    )
