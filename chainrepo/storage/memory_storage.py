"""
Memory Storage Module for ChainRepo

This module provides in-memory storage implementations for ChainRepo:
- MemoryKeyValueStore: a KeyValueStore over a dict, for tests and ephemeral chains
- MemoryDocumentStore: documents keyed by id with per-field indexes, the
  building block of the in-memory blockchain index
"""

from typing import Any

from chainrepo.storage.kv import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """Simple in-memory key-value store"""

    def __init__(self):
        self.data: dict[bytes, bytes] = {}

    async def put(self, key: bytes, value: bytes) -> None:
        self.data[bytes(key)] = bytes(value)

    async def get(self, key: bytes) -> bytes | None:
        return self.data.get(bytes(key))

    def size(self) -> int:
        """Get number of items in storage"""
        return len(self.data)


class MemoryDocumentStore:
    """
    In-memory document storage with indexing capabilities.

    List values are indexed element by element, so a document can be found
    through any of the values of a multi-valued field.
    """

    def __init__(self):
        self.data: dict[str, dict[str, Any]] = {}
        self.indexes: dict[str, dict[Any, list[str]]] = {}

    def create_index(self, field_name: str):
        """Create index for field"""
        if field_name not in self.indexes:
            self.indexes[field_name] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        """Get document by key"""
        return self.data.get(key)

    def set(self, key: str, value: dict[str, Any]):
        """
        Set document by key.

        Index entries of unchanged field values keep their position, so
        re-setting a document does not move it behind later documents.
        """
        previous = self.data.get(key)
        self.data[key] = value

        for field_name, index in self.indexes.items():
            new_values = self._field_values(value, field_name)
            if previous is not None:
                stale = [v for v in self._field_values(previous, field_name) if v not in new_values]
                self._unindex_values(key, index, stale)
            for field_value in new_values:
                keys = index.setdefault(field_value, [])
                if key not in keys:
                    keys.append(key)

    def _unindex(self, key: str, value: dict[str, Any]):
        for field_name, index in self.indexes.items():
            self._unindex_values(key, index, self._field_values(value, field_name))

    @staticmethod
    def _unindex_values(key: str, index: dict[Any, list[str]], field_values: list[Any]):
        for field_value in field_values:
            keys = index.get(field_value)
            if keys and key in keys:
                keys.remove(key)
                if not keys:
                    del index[field_value]

    @staticmethod
    def _field_values(value: dict[str, Any], field_name: str) -> list[Any]:
        if field_name not in value or value[field_name] is None:
            return []
        field_value = value[field_name]
        if isinstance(field_value, (list, tuple)):
            return list(dict.fromkeys(field_value))
        return [field_value]

    def delete(self, key: str) -> bool:
        """Delete document by key"""
        if key in self.data:
            self._unindex(key, self.data[key])
            del self.data[key]
            return True
        return False

    def query_by_index(self, index_name: str, value: Any) -> list[str]:
        """Query using index"""
        if index_name not in self.indexes:
            return []
        return list(self.indexes[index_name].get(value, []))

    def get_all_values(self) -> list[dict[str, Any]]:
        """Get all documents in insertion order"""
        return list(self.data.values())

    def size(self) -> int:
        """Get number of documents in storage"""
        return len(self.data)
