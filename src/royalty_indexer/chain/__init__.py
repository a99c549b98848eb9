"""EVM chain access: JSON-RPC log source and PaymentRecorded decoder."""

from royalty_indexer.chain.decoder import (
    PAYMENT_RECORDED_SIGNATURE,
    PAYMENT_RECORDED_TOPIC,
    decode_payment_log,
)
from royalty_indexer.chain.source import JsonRpcLogSource

__all__ = [
    "PAYMENT_RECORDED_SIGNATURE",
    "PAYMENT_RECORDED_TOPIC",
    "decode_payment_log",
    "JsonRpcLogSource",
]
