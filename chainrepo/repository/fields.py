"""
Indexed fields of block headers and transaction receipts.

The values are the field names used by the index implementations, both as
document keys of the in-memory index and as column names of the SQL index.
"""

from enum import Enum


class BlockHeaderFields(Enum):
    """Fields of a block header available to index queries"""
    HASH = "hash"
    PARENT_HASH = "parent_hash"
    OMMERS_HASH = "ommers_hash"
    COINBASE = "coinbase"
    STATE_ROOT = "state_root"
    DIFFICULTY = "difficulty"
    NUMBER = "number"
    GAS_LIMIT = "gas_limit"
    GAS_USED = "gas_used"
    EXTRA_DATA = "extra_data"
    TIMESTAMP = "timestamp"
    TOTAL_DIFFICULTY = "total_difficulty"


class TransactionReceiptFields(Enum):
    """Fields of a transaction receipt available to index queries"""
    INDEX = "index"
    TRANSACTION_HASH = "transaction_hash"
    BLOCK_HASH = "block_hash"
    LOGGER = "logger"
    LOG_TOPIC = "log_topic"
    BLOOM_FILTER = "bloom_filter"
    STATE_ROOT = "state_root"
    CUMULATIVE_GAS_USED = "cumulative_gas_used"
    STATUS = "status"


# Fields whose values are compared as integers by find_by_largest
NUMERIC_HEADER_FIELDS = frozenset({
    BlockHeaderFields.DIFFICULTY,
    BlockHeaderFields.NUMBER,
    BlockHeaderFields.GAS_LIMIT,
    BlockHeaderFields.GAS_USED,
    BlockHeaderFields.TIMESTAMP,
    BlockHeaderFields.TOTAL_DIFFICULTY,
})

NUMERIC_RECEIPT_FIELDS = frozenset({
    TransactionReceiptFields.INDEX,
    TransactionReceiptFields.CUMULATIVE_GAS_USED,
    TransactionReceiptFields.STATUS,
})
