"""
Key-value store contract for ChainRepo.

Blocks, block headers, transaction receipts and chain metadata each live in a
key-value store. Keys are raw hash bytes (plus one well-known metadata key),
values are encoded records. A store gives no ordering guarantee beyond
last-write-wins per key.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Asynchronous byte-keyed, byte-valued store."""

    @abstractmethod
    async def put(self, key: bytes, value: bytes) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    async def get(self, key: bytes) -> bytes | None:
        """Return the value stored under key, or None if the key is unknown."""
        pass

    async def close(self) -> None:
        """Release resources held by the store."""
        return None
