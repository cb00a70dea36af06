"""
Blockchain index for ChainRepo.

The index holds derived, non-authoritative entries for block headers and
transaction receipts so that the repository can answer queries the content
stores cannot: children of a header, the header with the largest total
difficulty, receipts of a block, receipts by position.

This module defines the index contracts and the in-memory implementation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

from chainrepo.core.block import BlockHeader
from chainrepo.core.receipt import TransactionReceipt
from chainrepo.core.utils import HASH_LENGTH, normalize_hash
from chainrepo.repository.fields import (
    BlockHeaderFields,
    TransactionReceiptFields,
    NUMERIC_HEADER_FIELDS,
    NUMERIC_RECEIPT_FIELDS
)
from chainrepo.storage.memory_storage import MemoryDocumentStore

logger = logging.getLogger(__name__)

IndexField = BlockHeaderFields | TransactionReceiptFields

HASH_FIELDS = frozenset({
    BlockHeaderFields.HASH,
    BlockHeaderFields.PARENT_HASH,
    TransactionReceiptFields.TRANSACTION_HASH,
    TransactionReceiptFields.BLOCK_HASH,
})

BYTES_FIELDS = frozenset({
    BlockHeaderFields.EXTRA_DATA,
    TransactionReceiptFields.BLOOM_FILTER,
})

# Numbers beyond a signed 64-bit integer cannot be block numbers
MAX_BLOCK_NUMBER = 2 ** 63 - 1


class BlockchainIndexWriter(ABC):
    """Writer handed to the mutator of BlockchainIndex.index"""

    @abstractmethod
    def index_block_header(self, header: BlockHeader) -> None:
        """
        Index a block header, upserting by header hash.

        The total difficulty is the header's difficulty plus the total
        difficulty of its parent when the parent is already indexed.
        """
        pass

    @abstractmethod
    def index_transaction_receipt(self, receipt: TransactionReceipt, tx_index: int,
                                  tx_hash: str, block_hash: str) -> None:
        """Index a transaction receipt, upserting by transaction hash."""
        pass


Mutator = Callable[[BlockchainIndexWriter], None]


class BlockchainIndex(ABC):
    """Secondary index over block headers and transaction receipts"""

    @abstractmethod
    async def index(self, mutator: Mutator) -> None:
        """Apply every write done by mutator as one atomic update."""
        pass

    @abstractmethod
    async def find_by(self, field: IndexField, value: Any) -> list[str]:
        """
        Find entries whose field equals value.

        Returns:
            Header hashes for BlockHeaderFields, transaction hashes for
            TransactionReceiptFields (ordered by block hash, then position)
        """
        pass

    @abstractmethod
    async def find_by_largest(self, field: IndexField) -> str | None:
        """Find the entry with the largest value of a numeric field; earliest indexed wins ties."""
        pass

    @abstractmethod
    async def find_by_block_hash_and_index(self, block_hash: str, index: int) -> str | None:
        """Find the transaction hash of the receipt at a position of a block."""
        pass

    @abstractmethod
    async def find_by_hash_or_number(self, value: str | bytes | int) -> list[str]:
        """Find header hashes matching value as a hash or as a block number."""
        pass

    @abstractmethod
    async def total_difficulty(self, header_hash: str) -> int | None:
        """Get the indexed total difficulty of a header."""
        pass


def normalize_field_value(field: IndexField, value: Any) -> Any:
    """Bring a query value into the form stored in index entries."""
    if value is None:
        return None
    if field in HASH_FIELDS:
        return normalize_hash(value)
    if field in BYTES_FIELDS and isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if field in NUMERIC_HEADER_FIELDS or field in NUMERIC_RECEIPT_FIELDS:
        return int(value)
    return value


def hash_or_number_terms(value: str | bytes | int) -> tuple[str | None, int | None]:
    """
    Split a hash-or-number lookup value into its two interpretations.

    A 32-byte value (hex or raw) is a hash, and also a block number when it
    is small enough to be one. An int or a decimal string is a number only.

    Returns:
        (hash or None, number or None)
    """
    if isinstance(value, bool):
        raise TypeError("block hash or number expected, got bool")
    if isinstance(value, int):
        return None, value

    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        number = int.from_bytes(raw, "big") if raw else None
        hash_term = raw.hex() if len(raw) == HASH_LENGTH else None
    elif isinstance(value, str):
        text = value[2:] if value.startswith("0x") else value
        if len(text) == HASH_LENGTH * 2:
            hash_term = text.lower()
            number = int(text, 16)
        elif text.isdigit():
            hash_term, number = None, int(text)
        else:
            raise ValueError(f"'{value}' is neither a block hash nor a block number")
    else:
        raise TypeError(f"block hash or number expected, got {type(value).__name__}")

    if number is not None and number > MAX_BLOCK_NUMBER:
        number = None
    return hash_term, number


def header_document(header: BlockHeader, total_difficulty: int) -> dict[str, Any]:
    """Index entry of a block header."""
    return {
        BlockHeaderFields.HASH.value: header.hash,
        BlockHeaderFields.PARENT_HASH.value: normalize_hash(header.parent_hash),
        BlockHeaderFields.OMMERS_HASH.value: header.ommers_hash,
        BlockHeaderFields.COINBASE.value: header.coinbase,
        BlockHeaderFields.STATE_ROOT.value: header.state_root,
        BlockHeaderFields.DIFFICULTY.value: header.difficulty,
        BlockHeaderFields.NUMBER.value: header.number,
        BlockHeaderFields.GAS_LIMIT.value: header.gas_limit,
        BlockHeaderFields.GAS_USED.value: header.gas_used,
        BlockHeaderFields.EXTRA_DATA.value: header.extra_data.hex(),
        BlockHeaderFields.TIMESTAMP.value: header.timestamp,
        BlockHeaderFields.TOTAL_DIFFICULTY.value: total_difficulty,
    }


def receipt_document(receipt: TransactionReceipt, tx_index: int,
                     tx_hash: str, block_hash: str) -> dict[str, Any]:
    """Index entry of a transaction receipt."""
    return {
        TransactionReceiptFields.INDEX.value: tx_index,
        TransactionReceiptFields.TRANSACTION_HASH.value: normalize_hash(tx_hash),
        TransactionReceiptFields.BLOCK_HASH.value: normalize_hash(block_hash),
        TransactionReceiptFields.LOGGER.value: receipt.loggers,
        TransactionReceiptFields.LOG_TOPIC.value: receipt.topics,
        TransactionReceiptFields.BLOOM_FILTER.value: receipt.bloom_filter.hex(),
        TransactionReceiptFields.STATE_ROOT.value: receipt.state_root,
        TransactionReceiptFields.CUMULATIVE_GAS_USED.value: receipt.cumulative_gas_used,
        TransactionReceiptFields.STATUS.value: receipt.status,
    }


class _MemoryIndexWriter(BlockchainIndexWriter):
    """Stages writes so that a failing mutator leaves the index untouched"""

    def __init__(self, index: 'MemoryBlockchainIndex'):
        self._index = index
        self.headers: dict[str, dict[str, Any]] = {}
        self.receipts: dict[str, dict[str, Any]] = {}

    def _parent_total_difficulty(self, parent_hash: str) -> int:
        parent = self.headers.get(parent_hash) or self._index.headers.get(parent_hash)
        if parent is None:
            return 0
        return parent[BlockHeaderFields.TOTAL_DIFFICULTY.value]

    def index_block_header(self, header: BlockHeader) -> None:
        parent_td = self._parent_total_difficulty(normalize_hash(header.parent_hash))
        self.headers[header.hash] = header_document(header, header.difficulty + parent_td)

    def index_transaction_receipt(self, receipt: TransactionReceipt, tx_index: int,
                                  tx_hash: str, block_hash: str) -> None:
        document = receipt_document(receipt, tx_index, tx_hash, block_hash)
        self.receipts[document[TransactionReceiptFields.TRANSACTION_HASH.value]] = document

    def commit(self) -> None:
        for key, document in self.headers.items():
            self._index.headers.set(key, document)
        for key, document in self.receipts.items():
            self._index.replace_receipt(key, document)


class MemoryBlockchainIndex(BlockchainIndex):
    """In-memory blockchain index built on MemoryDocumentStore"""

    def __init__(self):
        self.headers = MemoryDocumentStore()
        self.receipts = MemoryDocumentStore()
        for field in BlockHeaderFields:
            self.headers.create_index(field.value)
        for field in TransactionReceiptFields:
            self.receipts.create_index(field.value)

    async def index(self, mutator: Mutator) -> None:
        # No await between staging and commit: the update is atomic for other tasks
        writer = _MemoryIndexWriter(self)
        mutator(writer)
        writer.commit()

    def replace_receipt(self, tx_hash: str, document: dict[str, Any]) -> None:
        """Upsert a receipt entry; a different receipt at the same position is dropped."""
        block_hash = document[TransactionReceiptFields.BLOCK_HASH.value]
        position = document[TransactionReceiptFields.INDEX.value]
        for key in self.receipts.query_by_index(TransactionReceiptFields.BLOCK_HASH.value, block_hash):
            other = self.receipts.get(key)
            if key != tx_hash and other[TransactionReceiptFields.INDEX.value] == position:
                logger.debug(f"Receipt {key[:16]} replaced at position {position} of block {block_hash[:16]}")
                self.receipts.delete(key)
        self.receipts.set(tx_hash, document)

    def _sorted_receipts(self, keys: list[str]) -> list[str]:
        def position(key: str) -> tuple[str, int]:
            document = self.receipts.get(key)
            return (document[TransactionReceiptFields.BLOCK_HASH.value],
                    document[TransactionReceiptFields.INDEX.value])
        return sorted(keys, key=position)

    async def find_by(self, field: IndexField, value: Any) -> list[str]:
        value = normalize_field_value(field, value)
        if isinstance(field, BlockHeaderFields):
            return self.headers.query_by_index(field.value, value)
        return self._sorted_receipts(self.receipts.query_by_index(field.value, value))

    async def find_by_largest(self, field: IndexField) -> str | None:
        if isinstance(field, BlockHeaderFields):
            store, key_field, numeric = self.headers, BlockHeaderFields.HASH, NUMERIC_HEADER_FIELDS
        else:
            store, key_field, numeric = self.receipts, TransactionReceiptFields.TRANSACTION_HASH, NUMERIC_RECEIPT_FIELDS
        if field not in numeric:
            raise ValueError(f"{field.name} is not a numeric field")

        best_key, best_value = None, None
        for document in store.get_all_values():
            value = document.get(field.value)
            if value is None:
                continue
            if best_value is None or value > best_value:
                best_key, best_value = document[key_field.value], value
        return best_key

    async def find_by_block_hash_and_index(self, block_hash: str, index: int) -> str | None:
        block_hash = normalize_hash(block_hash)
        for key in self.receipts.query_by_index(TransactionReceiptFields.BLOCK_HASH.value, block_hash):
            if self.receipts.get(key)[TransactionReceiptFields.INDEX.value] == index:
                return key
        return None

    async def find_by_hash_or_number(self, value: str | bytes | int) -> list[str]:
        hash_term, number = hash_or_number_terms(value)
        matches = []
        if hash_term is not None and self.headers.get(hash_term) is not None:
            matches.append(hash_term)
        if number is not None:
            matches.extend(self.headers.query_by_index(BlockHeaderFields.NUMBER.value, number))
        return list(dict.fromkeys(matches))

    async def total_difficulty(self, header_hash: str) -> int | None:
        document = self.headers.get(normalize_hash(header_hash))
        if document is None:
            return None
        return document[BlockHeaderFields.TOTAL_DIFFICULTY.value]
