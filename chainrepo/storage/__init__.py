"""
Storage module for ChainRepo.
"""

from chainrepo.storage.kv import KeyValueStore
from chainrepo.storage.memory_storage import MemoryKeyValueStore, MemoryDocumentStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "MemoryDocumentStore"
]
