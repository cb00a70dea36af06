"""
Unit tests for the SQL storage backend and SQL key-value store.
"""

import asyncio

import pytest
from sqlalchemy.dialects import mysql, postgresql, sqlite

from chainrepo.core.errors import ConfigurationError
from chainrepo.storage.models import HeaderIndexModel, KeyValueModel, pad_difficulty
from chainrepo.storage.sql_backend import SqlStorageBackend, upsert, upsert_statement


def _setup_backend(tmp_path):
    return SqlStorageBackend(f"sqlite:///{tmp_path / 'chainrepo.db'}")


@pytest.mark.asyncio
async def test_sql_key_value_store_put_get(tmp_path):
    backend = _setup_backend(tmp_path)
    store = backend.key_value_store("blocks")

    assert await store.get(b"\x01" * 32) is None

    await store.put(b"\x01" * 32, b"first")
    await store.put(b"\x01" * 32, b"second")
    assert await store.get(b"\x01" * 32) == b"second"

    backend.close()


@pytest.mark.asyncio
async def test_sql_namespaces_are_isolated(tmp_path):
    backend = _setup_backend(tmp_path)
    blocks = backend.key_value_store("blocks")
    headers = backend.key_value_store("headers")

    await blocks.put(b"key", b"block")
    assert await headers.get(b"key") is None

    backend.close()


@pytest.mark.asyncio
async def test_sql_store_persists_across_backends(tmp_path):
    backend = _setup_backend(tmp_path)
    await backend.key_value_store("metadata").put(b"genesisBlock", b"\x02" * 32)
    backend.close()

    reopened = _setup_backend(tmp_path)
    assert await reopened.key_value_store("metadata").get(b"genesisBlock") == b"\x02" * 32
    reopened.close()


@pytest.mark.asyncio
async def test_in_memory_sqlite_is_shared_between_threads():
    backend = SqlStorageBackend("sqlite://")
    store = backend.key_value_store("blocks")

    await asyncio.gather(*(store.put(bytes([i]), bytes([i]) * 4) for i in range(10)))

    assert await store.get(bytes([7])) == b"\x07" * 4
    backend.close()


@pytest.mark.asyncio
async def test_failed_unit_of_work_rolls_back(tmp_path):
    backend = _setup_backend(tmp_path)
    store = backend.key_value_store("blocks")

    def _write_then_fail(session):
        session.add(KeyValueModel(namespace="blocks", key=b"k", value=b"v"))
        session.flush()
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await backend.run(_write_then_fail)
    assert await store.get(b"k") is None

    backend.close()


@pytest.mark.asyncio
async def test_upsert_updates_row_inserted_earlier_in_transaction(tmp_path):
    """A row written by someone else since it was last read is updated, not duplicated"""
    backend = _setup_backend(tmp_path)

    def _insert_then_upsert(session):
        session.add(KeyValueModel(namespace="blocks", key=b"k", value=b"theirs"))
        session.flush()
        upsert(session, KeyValueModel, {"namespace": "blocks", "key": b"k", "value": b"ours"},
               keys=("namespace", "key"))

    await backend.run(_insert_then_upsert)

    assert await backend.key_value_store("blocks").get(b"k") == b"ours"
    count = await backend.run(lambda session: session.query(KeyValueModel).count())
    assert count == 1

    backend.close()


@pytest.mark.asyncio
async def test_concurrent_puts_from_separate_backends(tmp_path):
    """Writers that do not share a lock both succeed on the same key"""
    first = _setup_backend(tmp_path)
    second = _setup_backend(tmp_path)
    stores = [first.key_value_store("blocks"), second.key_value_store("blocks")]

    await asyncio.gather(*(stores[i % 2].put(b"same", bytes([i])) for i in range(10)))

    assert await stores[0].get(b"same") in {bytes([i]) for i in range(10)}

    first.close()
    second.close()


@pytest.mark.parametrize("dialect, clause", [
    (postgresql.dialect(), "ON CONFLICT (hash) DO UPDATE"),
    (sqlite.dialect(), "ON CONFLICT (hash) DO UPDATE"),
    (mysql.dialect(), "ON DUPLICATE KEY UPDATE"),
])
def test_upsert_statement_per_dialect(dialect, clause):
    values = {"hash": "ab" * 32, "parent_hash": "00" * 32, "number": 1}

    statement = upsert_statement(dialect.name, HeaderIndexModel, values, keys=("hash",))
    sql = str(statement.compile(dialect=dialect))

    assert clause in sql
    assert "number" in sql.split(clause)[1]


def test_upsert_statement_rejects_unknown_dialect():
    with pytest.raises(ConfigurationError):
        upsert_statement("oracle", KeyValueModel, {"namespace": "n", "key": b"k", "value": b"v"},
                         keys=("namespace", "key"))


def test_pad_difficulty_orders_numerically():
    assert pad_difficulty(9) < pad_difficulty(10)
    assert pad_difficulty(2 ** 255) > pad_difficulty(2 ** 254)
    assert int(pad_difficulty(123)) == 123
