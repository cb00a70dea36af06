"""
Repository layer: the blockchain repository, its index and the factory.
"""

from chainrepo.repository.fields import BlockHeaderFields, TransactionReceiptFields
from chainrepo.repository.index import BlockchainIndex, BlockchainIndexWriter, MemoryBlockchainIndex
from chainrepo.repository.sql_index import SqlBlockchainIndex
from chainrepo.repository.blockchain_repository import BlockchainRepository
from chainrepo.repository.factory import (
    create_blockchain_index,
    create_key_value_store,
    create_sql_backend,
    open_repository
)

__all__ = [
    "BlockHeaderFields",
    "TransactionReceiptFields",
    "BlockchainIndex",
    "BlockchainIndexWriter",
    "MemoryBlockchainIndex",
    "SqlBlockchainIndex",
    "BlockchainRepository",
    "create_blockchain_index",
    "create_key_value_store",
    "create_sql_backend",
    "open_repository",
]
