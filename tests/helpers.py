"""
Record builders shared by the ChainRepo tests.
"""

from chainrepo.core.block import Block, BlockBody, BlockHeader, Transaction
from chainrepo.core.receipt import Log, TransactionReceipt
from chainrepo.core.utils import ZERO_HASH, generate_hash


def make_header(parent_hash: str = ZERO_HASH, difficulty: int = 1, number: int = 0, **kwargs) -> BlockHeader:
    return BlockHeader(parent_hash=parent_hash, difficulty=difficulty, number=number, **kwargs)


def make_block(parent: Block | None = None, difficulty: int = 1, transactions=(), **kwargs) -> Block:
    if parent is None:
        header = make_header(difficulty=difficulty, **kwargs)
    else:
        header = make_header(parent.hash, difficulty, parent.header.number + 1, **kwargs)
    return Block(header=header, body=BlockBody(transactions=transactions))


def make_transaction(nonce: int) -> Transaction:
    return Transaction(nonce=nonce, gas_price=20_000_000_000, gas_limit=21_000,
                       to="ab" * 20, value=10 ** 18, payload=b"")


def make_receipt(gas: int, status: int = 1, topics=()) -> TransactionReceipt:
    logs = (Log(logger="cd" * 20, topics=tuple(topics), data=b"\x01"),) if topics else ()
    return TransactionReceipt(cumulative_gas_used=gas, status=status, logs=logs)


def tx_hash(label: str) -> str:
    return generate_hash(f"tx-{label}")
