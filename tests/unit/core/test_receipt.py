"""
Unit tests for TransactionReceipt and Log records.
"""

import pytest

from chainrepo.core.errors import DecodeError
from chainrepo.core.receipt import Log, TransactionReceipt


def test_receipt_round_trip_with_logs():
    receipt = TransactionReceipt(
        cumulative_gas_used=42_000,
        status=1,
        bloom_filter=b"\x10" * 16,
        logs=[
            Log(logger="aa" * 20, topics=["t1", "t2"], data=b"payload"),
            Log(logger="bb" * 20),
        ]
    )

    decoded = TransactionReceipt.from_bytes(receipt.to_bytes())

    assert decoded == receipt
    assert decoded.logs[0].topics == ("t1", "t2")
    assert decoded.logs[1].topics == ()


def test_pre_status_receipt_keeps_state_root():
    receipt = TransactionReceipt(cumulative_gas_used=1, state_root="ef" * 32)
    decoded = TransactionReceipt.from_bytes(receipt.to_bytes())
    assert decoded.state_root == "ef" * 32
    assert decoded.status is None


def test_receipt_requires_status_or_state_root():
    with pytest.raises(ValueError):
        TransactionReceipt(cumulative_gas_used=1)


def test_receipt_rejects_negative_gas():
    with pytest.raises(ValueError):
        TransactionReceipt(cumulative_gas_used=-1, status=1)


def test_loggers_and_topics_flatten_logs():
    receipt = TransactionReceipt(
        cumulative_gas_used=1,
        status=0,
        logs=(Log("aa", ("x",)), Log("bb", ("y", "z")))
    )
    assert receipt.loggers == ["aa", "bb"]
    assert receipt.topics == ["x", "y", "z"]


def test_receipt_decode_failure():
    with pytest.raises(DecodeError):
        TransactionReceipt.from_bytes(b"\x00\x01\x02")
