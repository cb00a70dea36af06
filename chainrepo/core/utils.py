"""
Utility functions for ChainRepo.

This module provides hashing helpers and the conversions between the hex
hashes used by domain records and the raw byte keys used by the stores.
"""

import hashlib
import json
from typing import Any


HASH_LENGTH = 32
ZERO_HASH = "0" * (HASH_LENGTH * 2)
ZERO_ADDRESS = "0" * 40


def generate_hash(data: str | dict[str, Any]) -> str:
    """
    Generate SHA-256 hash for given data.
    
    Args:
        data: Data to hash (string or dictionary)
        
    Returns:
        SHA-256 hash as hexadecimal string
    """
    if isinstance(data, dict):
        # Sorted keys and compact separators keep the hash canonical
        data_string = json.dumps(data, sort_keys=True, separators=(',', ':'))
    else:
        data_string = str(data)
    
    return hashlib.sha256(data_string.encode()).hexdigest()


def hash_to_key(value: str | bytes) -> bytes:
    """
    Convert a hash into the byte key used by the key-value stores.
    
    Args:
        value: Hex-encoded hash (with or without 0x prefix) or raw key bytes
        
    Returns:
        Raw key bytes
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if value.startswith("0x"):
        value = value[2:]
    return bytes.fromhex(value)


def key_to_hash(key: bytes) -> str:
    """Convert a store key back into a hex hash."""
    return bytes(key).hex()


def normalize_hash(value: str | bytes) -> str:
    """Return the lowercase hex form of a hash given as hex or bytes."""
    return key_to_hash(hash_to_key(value))
