"""
Transaction receipt records for ChainRepo.

A receipt is the outcome of one transaction. It is stored under the hash of
the transaction that produced it and indexed by the block that contains that
transaction together with the transaction's position in the block.
"""

from dataclasses import dataclass, field
from typing import Any

from chainrepo.core import schemas


@dataclass(frozen=True)
class Log:
    """A log entry emitted while executing a transaction."""

    logger: str
    topics: tuple[str, ...] = field(default_factory=tuple)
    data: bytes = b""

    def __post_init__(self):
        object.__setattr__(self, "topics", tuple(self.topics))

    def to_row(self) -> dict[str, Any]:
        return {"logger": self.logger, "topics": list(self.topics), "data": self.data}

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> 'Log':
        return cls(logger=row["logger"], topics=tuple(row["topics"] or ()), data=row["data"])


@dataclass(frozen=True)
class TransactionReceipt:
    """
    Transaction receipt.

    Receipts created before status codes existed carry the intermediate
    state_root instead of a status; exactly one of the two is expected.
    """

    cumulative_gas_used: int
    status: int | None = None
    state_root: str | None = None
    bloom_filter: bytes = b""
    logs: tuple[Log, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.status is None and self.state_root is None:
            raise ValueError("receipt needs either a status or a state_root")
        if self.cumulative_gas_used < 0:
            raise ValueError("cumulative_gas_used must not be negative")
        object.__setattr__(self, "logs", tuple(self.logs))

    @property
    def loggers(self) -> list[str]:
        """Addresses of every log emitter, in log order."""
        return [log.logger for log in self.logs]

    @property
    def topics(self) -> list[str]:
        """Every topic of every log, in log order."""
        return [topic for log in self.logs for topic in log.topics]

    def to_row(self) -> dict[str, Any]:
        return {
            "state_root": self.state_root,
            "status": self.status,
            "cumulative_gas_used": self.cumulative_gas_used,
            "bloom_filter": self.bloom_filter,
            "logs": [log.to_row() for log in self.logs],
        }

    def to_bytes(self) -> bytes:
        """Canonical byte encoding of the receipt."""
        return schemas.encode_record(schemas.get_transaction_receipt_schema(), self.to_row())

    @classmethod
    def from_bytes(cls, data: bytes) -> 'TransactionReceipt':
        """
        Decode a receipt from its canonical byte encoding.

        Raises:
            DecodeError: If the bytes are not an encoded receipt
        """
        row = schemas.decode_record(schemas.get_transaction_receipt_schema(), data, "TransactionReceipt")
        return cls(
            cumulative_gas_used=row["cumulative_gas_used"],
            status=row["status"],
            state_root=row["state_root"],
            bloom_filter=row["bloom_filter"],
            logs=tuple(Log.from_row(log) for log in row["logs"] or []),
        )
