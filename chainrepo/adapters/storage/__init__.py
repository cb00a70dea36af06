"""
Storage adapters for ChainRepo.
"""

from chainrepo.adapters.storage.redis_storage import RedisKeyValueStore

__all__ = ["RedisKeyValueStore"]
