"""
Unit tests for the hashing and key conversion helpers.
"""

import pytest

from chainrepo.core.utils import (
    ZERO_HASH,
    generate_hash,
    hash_to_key,
    key_to_hash,
    normalize_hash
)


def test_generate_hash_dict_is_key_order_independent():
    assert generate_hash({"a": 1, "b": 2}) == generate_hash({"b": 2, "a": 1})
    assert len(generate_hash("data")) == 64


def test_hash_key_conversion():
    h = generate_hash("block")
    key = hash_to_key(h)
    assert isinstance(key, bytes)
    assert len(key) == 32
    assert key_to_hash(key) == h


def test_hash_to_key_accepts_prefix_and_bytes():
    h = generate_hash("block")
    assert hash_to_key("0x" + h) == hash_to_key(h)
    assert hash_to_key(bytearray(hash_to_key(h))) == hash_to_key(h)


def test_normalize_hash_lowercases():
    h = generate_hash("block")
    assert normalize_hash(h.upper()) == h
    assert normalize_hash(hash_to_key(h)) == h


def test_hash_to_key_rejects_non_hex():
    with pytest.raises(ValueError):
        hash_to_key("not-hex")
