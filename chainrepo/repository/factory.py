"""
Repository factory for ChainRepo.

Builds the four content stores and the blockchain index from Settings and
opens a BlockchainRepository over them.
"""

import logging

from chainrepo.adapters.storage.redis_storage import RedisKeyValueStore
from chainrepo.config.settings import Settings, get_settings
from chainrepo.core.block import Block
from chainrepo.core.errors import ConfigurationError
from chainrepo.repository.blockchain_repository import BlockchainRepository
from chainrepo.repository.index import BlockchainIndex, MemoryBlockchainIndex
from chainrepo.repository.sql_index import SqlBlockchainIndex
from chainrepo.storage.kv import KeyValueStore
from chainrepo.storage.memory_storage import MemoryKeyValueStore
from chainrepo.storage.sql_backend import SqlStorageBackend

logger = logging.getLogger(__name__)

STORE_NAMES = ("blocks", "headers", "receipts", "metadata")


def create_sql_backend(settings: Settings) -> SqlStorageBackend:
    """Create the SQL backend shared by SQL stores and the SQL index."""
    if not settings.DATABASE_URL:
        raise ConfigurationError("DATABASE_URL is required for the sql backend")
    return SqlStorageBackend(settings.DATABASE_URL, echo=settings.SQL_ECHO)


def create_key_value_store(name: str, settings: Settings,
                           backend: SqlStorageBackend | None = None) -> KeyValueStore:
    """
    Create one content store.

    Args:
        name: Store name, used as SQL namespace or Redis key prefix
        settings: Settings selecting the backend
        backend: SQL backend to share, created on demand for the sql backend

    Raises:
        ConfigurationError: If STORAGE_BACKEND is unknown
    """
    kind = settings.STORAGE_BACKEND
    if kind == "memory":
        return MemoryKeyValueStore()
    if kind == "sql":
        return (backend or create_sql_backend(settings)).key_value_store(name)
    if kind == "redis":
        return RedisKeyValueStore(
            prefix=f"{settings.REDIS_KEY_PREFIX}{name}:",
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD
        )
    raise ConfigurationError(f"Unknown storage backend: {kind}")


def create_blockchain_index(settings: Settings,
                            backend: SqlStorageBackend | None = None) -> BlockchainIndex:
    """
    Create the blockchain index.

    Raises:
        ConfigurationError: If INDEX_BACKEND is unknown
    """
    kind = settings.INDEX_BACKEND
    if kind == "memory":
        return MemoryBlockchainIndex()
    if kind == "sql":
        return SqlBlockchainIndex(backend or create_sql_backend(settings))
    raise ConfigurationError(f"Unknown index backend: {kind}")


async def open_repository(genesis_block: Block, settings: Settings = None) -> BlockchainRepository:
    """
    Open a blockchain repository as configured.

    Args:
        genesis_block: Genesis block of the chain
        settings: Settings to use, the environment's settings by default

    Raises:
        ConfigurationError: If the settings do not validate
        GenesisMismatchError: If the stores hold a chain with another genesis block
    """
    settings = settings or get_settings()
    errors = settings.validate_config()
    if errors:
        raise ConfigurationError("; ".join(errors))

    backend = None
    if "sql" in (settings.STORAGE_BACKEND, settings.INDEX_BACKEND):
        backend = create_sql_backend(settings)

    blocks, headers, receipts, metadata = (
        create_key_value_store(name, settings, backend) for name in STORE_NAMES
    )
    index = create_blockchain_index(settings, backend)

    logger.info(f"Opening repository with {settings.STORAGE_BACKEND} stores and {settings.INDEX_BACKEND} index")
    return await BlockchainRepository.init(
        block_store=blocks,
        block_header_store=headers,
        chain_metadata=metadata,
        transaction_receipts_store=receipts,
        blockchain_index=index,
        genesis_block=genesis_block
    )
