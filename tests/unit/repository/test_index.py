"""
Unit tests for the blockchain index implementations.

Every test runs against the in-memory index and the SQL index so that both
answer queries the same way.
"""

import pytest

from chainrepo.core.receipt import Log, TransactionReceipt
from chainrepo.repository.fields import BlockHeaderFields, TransactionReceiptFields
from chainrepo.repository.index import MemoryBlockchainIndex, hash_or_number_terms
from chainrepo.repository.sql_index import SqlBlockchainIndex
from chainrepo.storage.sql_backend import SqlStorageBackend
from tests.helpers import make_block, make_header, make_receipt, tx_hash


@pytest.fixture(params=["memory", "sql"])
def blockchain_index(request, tmp_path):
    if request.param == "memory":
        yield MemoryBlockchainIndex()
    else:
        backend = SqlStorageBackend(f"sqlite:///{tmp_path / 'index.db'}")
        yield SqlBlockchainIndex(backend)
        backend.close()


async def _index_header(index, header):
    await index.index(lambda writer: writer.index_block_header(header))


async def _index_receipt(index, receipt, position, tx, block_hash):
    await index.index(lambda writer: writer.index_transaction_receipt(receipt, position, tx, block_hash))


@pytest.mark.asyncio
async def test_find_by_parent_hash(blockchain_index):
    genesis = make_block()
    b1 = make_block(genesis, difficulty=2)
    b2 = make_block(genesis, difficulty=3)
    for block in (genesis, b1, b2):
        await _index_header(blockchain_index, block.header)

    children = await blockchain_index.find_by(BlockHeaderFields.PARENT_HASH, genesis.hash)

    assert children == [b1.hash, b2.hash]
    assert await blockchain_index.find_by(BlockHeaderFields.PARENT_HASH, b1.hash) == []


@pytest.mark.asyncio
async def test_total_difficulty_accumulates(blockchain_index):
    genesis = make_block(difficulty=1)
    b1 = make_block(genesis, difficulty=10)
    b2 = make_block(b1, difficulty=2 ** 130)
    for block in (genesis, b1, b2):
        await _index_header(blockchain_index, block.header)

    assert await blockchain_index.total_difficulty(genesis.hash) == 1
    assert await blockchain_index.total_difficulty(b1.hash) == 11
    assert await blockchain_index.total_difficulty(b2.hash) == 11 + 2 ** 130
    assert await blockchain_index.total_difficulty("ff" * 32) is None


@pytest.mark.asyncio
async def test_orphan_total_difficulty_is_own_difficulty(blockchain_index):
    genesis = make_block(difficulty=1)
    b1 = make_block(genesis, difficulty=10)

    await _index_header(blockchain_index, b1.header)
    assert await blockchain_index.total_difficulty(b1.hash) == 10

    # Indexing the parent does not touch the child; re-indexing the child does
    await _index_header(blockchain_index, genesis.header)
    await _index_header(blockchain_index, b1.header)
    assert await blockchain_index.total_difficulty(b1.hash) == 11


@pytest.mark.asyncio
async def test_mutator_sees_headers_it_indexed(blockchain_index):
    genesis = make_block(difficulty=4)
    b1 = make_block(genesis, difficulty=5)

    def mutator(writer):
        writer.index_block_header(genesis.header)
        writer.index_block_header(b1.header)

    await blockchain_index.index(mutator)
    assert await blockchain_index.total_difficulty(b1.hash) == 9


@pytest.mark.asyncio
async def test_failing_mutator_leaves_index_untouched(blockchain_index):
    genesis = make_block()

    def mutator(writer):
        writer.index_block_header(genesis.header)
        raise RuntimeError("interrupted")

    with pytest.raises(RuntimeError):
        await blockchain_index.index(mutator)
    assert await blockchain_index.find_by(BlockHeaderFields.HASH, genesis.hash) == []


@pytest.mark.asyncio
async def test_find_by_largest_total_difficulty(blockchain_index):
    assert await blockchain_index.find_by_largest(BlockHeaderFields.TOTAL_DIFFICULTY) is None

    genesis = make_block(difficulty=1)
    light = make_block(genesis, difficulty=9)
    heavy = make_block(genesis, difficulty=10)
    for block in (genesis, light, heavy):
        await _index_header(blockchain_index, block.header)

    assert await blockchain_index.find_by_largest(BlockHeaderFields.TOTAL_DIFFICULTY) == heavy.hash


@pytest.mark.asyncio
async def test_find_by_largest_tie_goes_to_first_indexed(blockchain_index):
    genesis = make_block()
    first = make_block(genesis, difficulty=5, timestamp=1)
    second = make_block(genesis, difficulty=5, timestamp=2)
    for block in (genesis, first, second):
        await _index_header(blockchain_index, block.header)

    assert await blockchain_index.find_by_largest(BlockHeaderFields.TOTAL_DIFFICULTY) == first.hash


@pytest.mark.asyncio
async def test_find_by_largest_compares_numerically(blockchain_index):
    genesis = make_block(difficulty=9)
    other = make_block(difficulty=10, timestamp=1)
    for block in (genesis, other):
        await _index_header(blockchain_index, block.header)

    assert await blockchain_index.find_by_largest(BlockHeaderFields.DIFFICULTY) == other.hash


@pytest.mark.asyncio
async def test_find_by_largest_rejects_non_numeric_field(blockchain_index):
    with pytest.raises(ValueError):
        await blockchain_index.find_by_largest(BlockHeaderFields.COINBASE)


@pytest.mark.asyncio
async def test_find_by_hash_or_number(blockchain_index):
    genesis = make_block()
    b1 = make_block(genesis, difficulty=2)
    fork = make_block(genesis, difficulty=3)
    for block in (genesis, b1, fork):
        await _index_header(blockchain_index, block.header)

    assert await blockchain_index.find_by_hash_or_number(1) == [b1.hash, fork.hash]
    assert await blockchain_index.find_by_hash_or_number("1") == [b1.hash, fork.hash]
    assert await blockchain_index.find_by_hash_or_number(b1.hash) == [b1.hash]
    assert await blockchain_index.find_by_hash_or_number(bytes.fromhex(b1.hash)) == [b1.hash]
    assert await blockchain_index.find_by_hash_or_number(7) == []


@pytest.mark.asyncio
async def test_small_hash_value_also_matches_number(blockchain_index):
    genesis = make_block()
    await _index_header(blockchain_index, genesis.header)

    # 32 zero bytes is block number 0
    assert await blockchain_index.find_by_hash_or_number(b"\x00" * 32) == [genesis.hash]


@pytest.mark.asyncio
async def test_receipts_by_block_ordered_by_position(blockchain_index):
    block_hash = make_block().hash
    for position in (2, 0, 1):
        await _index_receipt(blockchain_index, make_receipt(position * 10), position,
                             tx_hash(str(position)), block_hash)

    found = await blockchain_index.find_by(TransactionReceiptFields.BLOCK_HASH, block_hash)

    assert found == [tx_hash("0"), tx_hash("1"), tx_hash("2")]


@pytest.mark.asyncio
async def test_find_by_block_hash_and_index(blockchain_index):
    block_hash = make_block().hash
    await _index_receipt(blockchain_index, make_receipt(1), 0, tx_hash("a"), block_hash)
    await _index_receipt(blockchain_index, make_receipt(2), 1, tx_hash("b"), block_hash)

    assert await blockchain_index.find_by_block_hash_and_index(block_hash, 1) == tx_hash("b")
    assert await blockchain_index.find_by_block_hash_and_index(block_hash, 5) is None
    assert await blockchain_index.find_by_block_hash_and_index("ee" * 32, 0) is None


@pytest.mark.asyncio
async def test_receipt_position_is_last_write_wins(blockchain_index):
    block_hash = make_block().hash
    await _index_receipt(blockchain_index, make_receipt(1), 0, tx_hash("old"), block_hash)
    await _index_receipt(blockchain_index, make_receipt(2), 0, tx_hash("new"), block_hash)

    assert await blockchain_index.find_by_block_hash_and_index(block_hash, 0) == tx_hash("new")
    assert await blockchain_index.find_by(TransactionReceiptFields.BLOCK_HASH, block_hash) == [tx_hash("new")]


@pytest.mark.asyncio
async def test_reindexing_receipt_is_idempotent(blockchain_index):
    block_hash = make_block().hash
    receipt = make_receipt(1, topics=["t"])
    await _index_receipt(blockchain_index, receipt, 0, tx_hash("a"), block_hash)
    await _index_receipt(blockchain_index, receipt, 0, tx_hash("a"), block_hash)

    assert await blockchain_index.find_by(TransactionReceiptFields.BLOCK_HASH, block_hash) == [tx_hash("a")]
    assert await blockchain_index.find_by(TransactionReceiptFields.LOG_TOPIC, "t") == [tx_hash("a")]


@pytest.mark.asyncio
async def test_find_receipts_by_log_fields(blockchain_index):
    block_hash = make_block().hash
    with_logs = TransactionReceipt(
        cumulative_gas_used=5,
        status=1,
        logs=(Log("aa" * 20, ("transfer", "approval")), Log("bb" * 20))
    )
    await _index_receipt(blockchain_index, with_logs, 0, tx_hash("logs"), block_hash)
    await _index_receipt(blockchain_index, make_receipt(6), 1, tx_hash("plain"), block_hash)

    assert await blockchain_index.find_by(TransactionReceiptFields.LOGGER, "bb" * 20) == [tx_hash("logs")]
    assert await blockchain_index.find_by(TransactionReceiptFields.LOG_TOPIC, "approval") == [tx_hash("logs")]
    assert await blockchain_index.find_by(TransactionReceiptFields.STATUS, 1) == [tx_hash("logs"), tx_hash("plain")]
    assert await blockchain_index.find_by(TransactionReceiptFields.INDEX, 1) == [tx_hash("plain")]


@pytest.mark.asyncio
async def test_find_header_by_other_fields(blockchain_index):
    header = make_header(difficulty=3, coinbase="cc" * 20, extra_data=b"\x01")
    await _index_header(blockchain_index, header)

    assert await blockchain_index.find_by(BlockHeaderFields.COINBASE, "cc" * 20) == [header.hash]
    assert await blockchain_index.find_by(BlockHeaderFields.EXTRA_DATA, b"\x01") == [header.hash]
    assert await blockchain_index.find_by(BlockHeaderFields.DIFFICULTY, 3) == [header.hash]
    assert await blockchain_index.find_by(BlockHeaderFields.TOTAL_DIFFICULTY, 3) == [header.hash]


def test_hash_or_number_terms():
    h = "ab" * 32
    assert hash_or_number_terms(5) == (None, 5)
    assert hash_or_number_terms("12") == (None, 12)
    assert hash_or_number_terms(h) == (h, None)
    assert hash_or_number_terms("0x" + "00" * 31 + "05") == ("00" * 31 + "05", 5)

    with pytest.raises(ValueError):
        hash_or_number_terms("latest")
    with pytest.raises(TypeError):
        hash_or_number_terms(True)
    with pytest.raises(TypeError):
        hash_or_number_terms(1.5)
