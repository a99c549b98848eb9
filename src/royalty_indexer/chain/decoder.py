"""Event decoder - RawLog -> PaymentEvent for the router's PaymentRecorded log."""

from __future__ import annotations

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import is_hex, keccak, to_checksum_address

from royalty_indexer.errors import DecodeError
from royalty_indexer.models.events import PaymentEvent, PaymentType, RawLog, to_token_units

PAYMENT_RECORDED_SIGNATURE = (
    "PaymentRecorded(bytes32,address,uint256,uint256,uint256,uint8)"
)
PAYMENT_RECORDED_TOPIC = "0x" + keccak(text=PAYMENT_RECORDED_SIGNATURE).hex()

# Non-indexed fields, in log data order.
_DATA_TYPES = ["uint256", "uint256", "uint256", "uint8"]


def decode_payment_log(log: RawLog) -> PaymentEvent:
    """Decode a PaymentRecorded log.

    topics[0] is the event signature, topics[1] the song id (bytes32) and
    topics[2] the listener address. Any deviation raises DecodeError; one
    bad log never affects its neighbours.
    """
    if len(log.topics) < 3:
        raise DecodeError(f"expected 3 topics, got {len(log.topics)}")
    if log.topics[0].lower() != PAYMENT_RECORDED_TOPIC:
        raise DecodeError(f"unexpected topic0 {log.topics[0]}")

    song_hash = _word(log.topics[1], "songId")
    listener_word = _word(log.topics[2], "listener")
    try:
        listener = to_checksum_address("0x" + listener_word[-40:])
    except ValueError as e:
        raise DecodeError(f"bad listener topic: {e}") from e

    if not is_hex(log.data):
        raise DecodeError("log data is not hex")
    try:
        gross, fee, net, raw_type = decode(_DATA_TYPES, bytes.fromhex(log.data[2:]))
    except (DecodingError, ValueError) as e:
        raise DecodeError(f"malformed data: {e}") from e

    try:
        payment_type = PaymentType(raw_type)
    except ValueError as e:
        raise DecodeError(f"unknown payment type {raw_type}") from e

    return PaymentEvent(
        song_hash=song_hash,
        listener=listener,
        gross_amount=to_token_units(gross),
        protocol_fee=to_token_units(fee),
        net_amount=to_token_units(net),
        payment_type=payment_type,
        tx_hash=log.tx_hash.lower(),
        log_index=log.log_index,
        block_number=log.block_number,
        timestamp=log.block_timestamp,
    )


def _word(topic: str, name: str) -> str:
    """Normalize a 32-byte topic to lowercase 0x hex."""
    body = topic[2:] if topic[:2].lower() == "0x" else topic
    if len(body) != 64 or not is_hex(body):
        raise DecodeError(f"{name} topic is not a 32-byte word: {topic}")
    return "0x" + body.lower()
