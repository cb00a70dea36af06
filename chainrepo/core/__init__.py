"""
Core records and helpers for ChainRepo.
"""

from chainrepo.core.block import Block, BlockBody, BlockHeader, Transaction
from chainrepo.core.receipt import Log, TransactionReceipt
from chainrepo.core.errors import (
    RepositoryError,
    DecodeError,
    HeaderCycleError,
    GenesisMismatchError,
    ConfigurationError
)

__all__ = [
    "Block",
    "BlockBody",
    "BlockHeader",
    "Transaction",
    "Log",
    "TransactionReceipt",
    "RepositoryError",
    "DecodeError",
    "HeaderCycleError",
    "GenesisMismatchError",
    "ConfigurationError"
]
