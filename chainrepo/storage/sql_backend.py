"""
SQL Storage Backend for ChainRepo.

This module implements the persistent storage layer using SQLAlchemy.
SqlStorageBackend owns the engine and the thread-safe session factory;
SqlKeyValueStore exposes one namespace of the kv_entries table as a
KeyValueStore. Blocking database work runs in worker threads so the
event loop is never held up by I/O.
"""

import asyncio
import threading
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import Insert, create_engine
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool

from chainrepo.core.errors import ConfigurationError
from chainrepo.storage.kv import KeyValueStore
from chainrepo.storage.models import Base, KeyValueModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Dialects with a native insert-or-update statement
UPSERT_DIALECTS = ("postgresql", "sqlite", "mysql", "mariadb")


def upsert_statement(dialect_name: str, model: type, values: dict[str, Any], keys: tuple[str, ...]) -> Insert:
    """
    Build an INSERT that updates the existing row when the unique keys collide.

    Concurrent writers of the same key both succeed, the last one wins,
    instead of the slower one failing on the unique constraint.

    Args:
        dialect_name: Name of the database dialect
        model: Mapped class of the target table
        values: Column values of the row
        keys: Columns of the unique constraint identifying the row

    Raises:
        ConfigurationError: If the dialect has no upsert statement
    """
    changes = {column: value for column, value in values.items() if column not in keys}
    if dialect_name in ("mysql", "mariadb"):
        return mysql.insert(model).values(**values).on_duplicate_key_update(**changes)
    if dialect_name == "postgresql":
        insert = postgresql.insert
    elif dialect_name == "sqlite":
        insert = sqlite.insert
    else:
        raise ConfigurationError(f"No upsert support for the {dialect_name} dialect")
    return insert(model).values(**values).on_conflict_do_update(index_elements=list(keys), set_=changes)


def upsert(session: Session, model: type, values: dict[str, Any], keys: tuple[str, ...]) -> None:
    """Insert or update one row in the session's transaction."""
    session.execute(upsert_statement(session.get_bind().dialect.name, model, values, keys))


class SqlStorageBackend:
    """
    Persistent storage backend using SQL Database.
    Shared by the SQL key-value stores and the SQL blockchain index.
    """

    def __init__(self, connection_string: str, echo: bool = False):
        """
        Initialize the SQL Storage Backend.

        Args:
            connection_string: SQL connection string (e.g., sqlite:///chainrepo.db)
            echo: Log every SQL statement
        """
        self.db_url = connection_string
        engine_options: dict[str, Any] = {"echo": echo}
        if self._is_sqlite_memory(connection_string):
            # A single shared connection, otherwise every thread sees its own empty database
            engine_options["connect_args"] = {"check_same_thread": False}
            engine_options["poolclass"] = StaticPool
        self.engine = create_engine(self.db_url, **engine_options)
        if self.engine.dialect.name not in UPSERT_DIALECTS:
            raise ConfigurationError(f"Unsupported database dialect: {self.engine.dialect.name}")

        # SQLite allows a single writer; transactions are serialized instead of failing with "database is locked"
        self._lock = threading.Lock() if self.engine.dialect.name == "sqlite" else None

        # Create all tables (if they don't exist)
        Base.metadata.create_all(self.engine)

        # Create thread-safe session factory
        self.Session = scoped_session(sessionmaker(bind=self.engine))

        logger.info(f"SqlStorageBackend initialized with {self.db_url}")

    @staticmethod
    def _is_sqlite_memory(url: str) -> bool:
        return url in ("sqlite://", "sqlite:///:memory:") or url.endswith(":memory:")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
            self.Session.remove()

    async def run(self, func: Callable[[Session], T]) -> T:
        """Run func inside a session scope on a worker thread."""
        def _call() -> T:
            if self._lock is None:
                with self.session_scope() as session:
                    return func(session)
            with self._lock, self.session_scope() as session:
                return func(session)
        return await asyncio.to_thread(_call)

    def key_value_store(self, namespace: str) -> 'SqlKeyValueStore':
        """Get the key-value store for one namespace."""
        return SqlKeyValueStore(self, namespace)

    def close(self):
        """Close connection pool."""
        self.Session.remove()
        self.engine.dispose()


class SqlKeyValueStore(KeyValueStore):
    """KeyValueStore over one namespace of the kv_entries table"""

    def __init__(self, backend: SqlStorageBackend, namespace: str):
        self.backend = backend
        self.namespace = namespace

    async def put(self, key: bytes, value: bytes) -> None:
        def _put(session: Session) -> None:
            upsert(session, KeyValueModel, {
                "namespace": self.namespace,
                "key": bytes(key),
                "value": bytes(value),
                "updated_at": time.time()
            }, keys=("namespace", "key"))

        await self.backend.run(_put)

    async def get(self, key: bytes) -> bytes | None:
        def _get(session: Session) -> bytes | None:
            entry = session.get(KeyValueModel, (self.namespace, bytes(key)))
            return entry.value if entry is not None else None

        return await self.backend.run(_get)
