"""
Block implementation for ChainRepo.

This module implements the block records persisted by the repository:
- BlockHeader: consensus fields, identified by its own hash
- Transaction: a transaction carried in a block body
- BlockBody: transactions and ommer headers
- Block: header + body, identified by the hash of its header

Records are immutable. Each one has a canonical Arrow byte encoding
(to_bytes / from_bytes) and a dictionary form used for hashing.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from chainrepo.core import schemas
from chainrepo.core.utils import ZERO_HASH, ZERO_ADDRESS, generate_hash

INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1


def _check_range(name: str, value: int, maximum: int):
    """Raise ValueError unless 0 <= value <= maximum"""
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    if value > maximum:
        raise ValueError(f"{name} exceeds {maximum}")


@dataclass(frozen=True)
class BlockHeader:
    """
    Block header.

    Only parent_hash, difficulty and number matter to the repository; the
    remaining consensus fields are carried and indexed as-is.
    """

    parent_hash: str
    difficulty: int
    number: int
    timestamp: int = 0
    ommers_hash: str = ZERO_HASH
    coinbase: str = ZERO_ADDRESS
    state_root: str = ZERO_HASH
    transactions_root: str = ZERO_HASH
    receipts_root: str = ZERO_HASH
    logs_bloom: bytes = b""
    gas_limit: int = 0
    gas_used: int = 0
    extra_data: bytes = b""
    mix_hash: str = ZERO_HASH
    nonce: int = 0

    def __post_init__(self):
        if self.difficulty < 0:
            raise ValueError("difficulty must not be negative")
        for name in ("number", "timestamp", "gas_limit", "gas_used"):
            _check_range(name, getattr(self, name), INT64_MAX)
        _check_range("nonce", self.nonce, UINT64_MAX)

    @cached_property
    def hash(self) -> str:
        """Hash of the header, its identity and storage key."""
        return generate_hash(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        """
        Convert header to dictionary representation.

        Returns:
            JSON-compatible dictionary (bytes fields hex-encoded)
        """
        return {
            "parent_hash": self.parent_hash,
            "ommers_hash": self.ommers_hash,
            "coinbase": self.coinbase,
            "state_root": self.state_root,
            "transactions_root": self.transactions_root,
            "receipts_root": self.receipts_root,
            "logs_bloom": self.logs_bloom.hex(),
            "difficulty": self.difficulty,
            "number": self.number,
            "gas_limit": self.gas_limit,
            "gas_used": self.gas_used,
            "timestamp": self.timestamp,
            "extra_data": self.extra_data.hex(),
            "mix_hash": self.mix_hash,
            "nonce": self.nonce,
        }

    def to_row(self) -> dict[str, Any]:
        """Row matching schemas.HEADER_FIELDS."""
        row = self.to_dict()
        row["logs_bloom"] = self.logs_bloom
        row["extra_data"] = self.extra_data
        row["difficulty"] = str(self.difficulty)
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> 'BlockHeader':
        """Build a header from a row matching schemas.HEADER_FIELDS."""
        return cls(
            parent_hash=row["parent_hash"],
            difficulty=int(row["difficulty"]),
            number=row["number"],
            timestamp=row["timestamp"],
            ommers_hash=row["ommers_hash"],
            coinbase=row["coinbase"],
            state_root=row["state_root"],
            transactions_root=row["transactions_root"],
            receipts_root=row["receipts_root"],
            logs_bloom=row["logs_bloom"],
            gas_limit=row["gas_limit"],
            gas_used=row["gas_used"],
            extra_data=row["extra_data"],
            mix_hash=row["mix_hash"],
            nonce=row["nonce"],
        )

    def to_bytes(self) -> bytes:
        """Canonical byte encoding of the header."""
        return schemas.encode_record(schemas.get_block_header_schema(), self.to_row())

    @classmethod
    def from_bytes(cls, data: bytes) -> 'BlockHeader':
        """
        Decode a header from its canonical byte encoding.

        Raises:
            DecodeError: If the bytes are not an encoded header
        """
        row = schemas.decode_record(schemas.get_block_header_schema(), data, "BlockHeader")
        return cls.from_row(row)

    def __str__(self) -> str:
        return f"BlockHeader(number={self.number}, hash={self.hash[:10]}...)"


@dataclass(frozen=True)
class Transaction:
    """A transaction as carried in a block body."""

    nonce: int
    gas_price: int
    gas_limit: int
    to: str | None
    value: int
    payload: bytes = b""

    def __post_init__(self):
        _check_range("nonce", self.nonce, UINT64_MAX)
        _check_range("gas_limit", self.gas_limit, INT64_MAX)
        if self.gas_price < 0 or self.value < 0:
            raise ValueError("gas_price and value must not be negative")

    @cached_property
    def hash(self) -> str:
        return generate_hash(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "nonce": self.nonce,
            "gas_price": self.gas_price,
            "gas_limit": self.gas_limit,
            "to": self.to,
            "value": self.value,
            "payload": self.payload.hex(),
        }

    def to_row(self) -> dict[str, Any]:
        return {
            "nonce": self.nonce,
            "gas_price": str(self.gas_price),
            "gas_limit": self.gas_limit,
            "to": self.to,
            "value": str(self.value),
            "payload": self.payload,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> 'Transaction':
        return cls(
            nonce=row["nonce"],
            gas_price=int(row["gas_price"]),
            gas_limit=row["gas_limit"],
            to=row["to"],
            value=int(row["value"]),
            payload=row["payload"],
        )


@dataclass(frozen=True)
class BlockBody:
    """Transactions and ommer headers of a block."""

    transactions: tuple[Transaction, ...] = field(default_factory=tuple)
    ommers: tuple[BlockHeader, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept lists from callers; the record itself stays immutable
        object.__setattr__(self, "transactions", tuple(self.transactions))
        object.__setattr__(self, "ommers", tuple(self.ommers))


@dataclass(frozen=True)
class Block:
    """
    Block: header + body.

    A block is addressed by the hash of its header and never changes once stored.
    """

    header: BlockHeader
    body: BlockBody = field(default_factory=BlockBody)

    @property
    def hash(self) -> str:
        """Hash of the block, i.e. the hash of its header."""
        return self.header.hash

    def to_dict(self) -> dict[str, Any]:
        """
        Convert block to dictionary representation.

        Returns:
            Dictionary representation of the block
        """
        return {
            "hash": self.hash,
            "header": self.header.to_dict(),
            "transactions": [tx.to_dict() for tx in self.body.transactions],
            "ommers": [ommer.to_dict() for ommer in self.body.ommers],
        }

    def to_bytes(self) -> bytes:
        """Canonical byte encoding of the block."""
        row = {
            "header": self.header.to_row(),
            "transactions": [tx.to_row() for tx in self.body.transactions],
            "ommers": [ommer.to_row() for ommer in self.body.ommers],
        }
        return schemas.encode_record(schemas.get_block_schema(), row)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Block':
        """
        Decode a block from its canonical byte encoding.

        Raises:
            DecodeError: If the bytes are not an encoded block
        """
        row = schemas.decode_record(schemas.get_block_schema(), data, "Block")
        body = BlockBody(
            transactions=tuple(Transaction.from_row(tx) for tx in row["transactions"] or []),
            ommers=tuple(BlockHeader.from_row(ommer) for ommer in row["ommers"] or []),
        )
        return cls(header=BlockHeader.from_row(row["header"]), body=body)

    def __str__(self) -> str:
        """String representation of the block."""
        return f"Block(number={self.header.number}, transactions={len(self.body.transactions)}, hash={self.hash[:10]}...)"
