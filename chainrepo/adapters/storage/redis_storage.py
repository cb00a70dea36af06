"""
Redis storage adapter for ChainRepo

This module provides a KeyValueStore backed by Redis. Each content store
(blocks, headers, receipts, chain metadata) uses its own key prefix, so all
of them can share one Redis database.
"""

import logging

import redis.asyncio as redis

from chainrepo.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Redis-based key-value store for blockchain data"""

    def __init__(self, prefix: str, host: str = "localhost", port: int = 6379, db: int = 0,
                 password: str = None, client: redis.Redis = None, **kwargs):
        """
        Initialize Redis key-value store

        Args:
            prefix: Key prefix of this store (e.g. "chainrepo:blocks:")
            host: Redis server host
            port: Redis server port
            db: Redis database number
            password: Redis password (if required)
            client: Existing client to share between stores
            **kwargs: Additional Redis connection parameters
        """
        self.prefix = prefix.encode("utf-8")

        if client is None:
            # Connection parameters; values are raw bytes
            connection_params = {
                'host': host,
                'port': port,
                'db': db,
                'decode_responses': False,
                **kwargs
            }
            if password:
                connection_params['password'] = password
            client = redis.Redis(**connection_params)
            logger.info(f"Redis store '{prefix}' using {host}:{port}/{db}")

        self.redis_client = client

    def _get_key(self, key: bytes) -> bytes:
        """Get Redis key for a store key"""
        return self.prefix + bytes(key)

    async def ping(self) -> bool:
        """Check that the Redis server answers."""
        return bool(await self.redis_client.ping())

    async def put(self, key: bytes, value: bytes) -> None:
        try:
            await self.redis_client.set(self._get_key(key), bytes(value))
        except Exception as e:
            logger.error(f"Failed to store key {bytes(key).hex()[:16]} in {self.prefix!r}: {e}")
            raise

    async def get(self, key: bytes) -> bytes | None:
        try:
            return await self.redis_client.get(self._get_key(key))
        except Exception as e:
            logger.error(f"Failed to read key {bytes(key).hex()[:16]} from {self.prefix!r}: {e}")
            raise

    async def close(self) -> None:
        await self.redis_client.aclose()
