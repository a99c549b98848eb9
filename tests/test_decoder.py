"""Decoding PaymentRecorded logs into PaymentEvents."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from royalty_indexer.chain.decoder import PAYMENT_RECORDED_TOPIC, decode_payment_log
from royalty_indexer.errors import DecodeError
from royalty_indexer.models.events import PaymentType, to_token_units, to_wei

from tests.factories import LISTENER, WEI, make_bad_log, make_raw_log, song_hash


def test_decodes_all_fields():
    raw = make_raw_log(
        gross=3 * WEI // 2, fee=15 * WEI // 1000, net=1_485 * WEI // 1000,
        payment_type=1, log_index=4, block_number=321, block_timestamp=1_700_000_000,
    )

    event = decode_payment_log(raw)

    assert event.song_hash == song_hash("song-1")
    assert event.listener == LISTENER
    assert event.gross_amount == Decimal("1.5")
    assert event.protocol_fee == Decimal("0.015")
    assert event.net_amount == Decimal("1.485")
    assert event.payment_type == PaymentType.DOWNLOAD
    assert event.key == (raw.tx_hash, 4)
    assert event.block_number == 321
    assert event.timestamp == 1_700_000_000


def test_topic_constant_is_a_32_byte_hash():
    assert PAYMENT_RECORDED_TOPIC.startswith("0x")
    assert len(PAYMENT_RECORDED_TOPIC) == 66


def test_wrong_event_signature_rejected():
    raw = make_raw_log()
    other = replace(raw, topics=("0x" + "ff" * 32,) + raw.topics[1:])
    with pytest.raises(DecodeError, match="topic0"):
        decode_payment_log(other)


def test_missing_indexed_topics_rejected():
    raw = make_raw_log()
    with pytest.raises(DecodeError, match="3 topics"):
        decode_payment_log(replace(raw, topics=raw.topics[:2]))


def test_truncated_data_rejected():
    with pytest.raises(DecodeError, match="malformed data"):
        decode_payment_log(make_bad_log())


def test_unknown_payment_type_rejected():
    with pytest.raises(DecodeError, match="payment type 9"):
        decode_payment_log(make_raw_log(payment_type=9))


def test_wei_conversion_is_exact_for_uint256():
    largest = 2**256 - 1
    assert to_wei(to_token_units(largest)) == largest
    assert to_token_units(1) == Decimal("1E-18")
