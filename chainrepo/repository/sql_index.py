"""
SQL Blockchain Index for ChainRepo.

This module implements the blockchain index on top of the SQL storage
backend. A mutator passed to index() runs inside one database transaction,
so either all of its writes become visible or none do.
"""

import logging
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from chainrepo.core.block import BlockHeader
from chainrepo.core.receipt import TransactionReceipt
from chainrepo.core.utils import normalize_hash
from chainrepo.repository.fields import (
    BlockHeaderFields,
    TransactionReceiptFields,
    NUMERIC_HEADER_FIELDS,
    NUMERIC_RECEIPT_FIELDS
)
from chainrepo.repository.index import (
    BlockchainIndex,
    BlockchainIndexWriter,
    IndexField,
    Mutator,
    hash_or_number_terms,
    header_document,
    normalize_field_value,
    receipt_document
)
from chainrepo.storage.models import (
    HeaderIndexModel,
    ReceiptIndexModel,
    ReceiptLogIndexModel,
    pad_difficulty
)
from chainrepo.storage.sql_backend import SqlStorageBackend, upsert

logger = logging.getLogger(__name__)

DIFFICULTY_FIELDS = frozenset({BlockHeaderFields.DIFFICULTY, BlockHeaderFields.TOTAL_DIFFICULTY})

# Receipt fields whose column name differs from the field name
RECEIPT_COLUMNS = {
    TransactionReceiptFields.INDEX: ReceiptIndexModel.tx_index,
}

LOG_COLUMNS = {
    TransactionReceiptFields.LOGGER: ReceiptLogIndexModel.logger,
    TransactionReceiptFields.LOG_TOPIC: ReceiptLogIndexModel.topic,
}


class _SqlIndexWriter(BlockchainIndexWriter):
    """Writes index rows within the session of one index() call"""

    def __init__(self, session: Session):
        self.session = session

    def _total_difficulty(self, header_hash: str) -> int:
        row = self.session.query(HeaderIndexModel.total_difficulty).filter_by(hash=header_hash).first()
        return int(row.total_difficulty) if row is not None else 0

    def index_block_header(self, header: BlockHeader) -> None:
        parent_td = self._total_difficulty(normalize_hash(header.parent_hash))
        document = header_document(header, header.difficulty + parent_td)
        for field in DIFFICULTY_FIELDS:
            document[field.value] = pad_difficulty(document[field.value])

        # A re-indexed header keeps its row, and so its place in insertion order
        upsert(self.session, HeaderIndexModel, document, keys=(BlockHeaderFields.HASH.value,))

    def _delete_receipt(self, tx_hash: str) -> None:
        self.session.query(ReceiptLogIndexModel).filter_by(transaction_hash=tx_hash).delete()
        self.session.query(ReceiptIndexModel).filter_by(transaction_hash=tx_hash).delete()

    def index_transaction_receipt(self, receipt: TransactionReceipt, tx_index: int,
                                  tx_hash: str, block_hash: str) -> None:
        document = receipt_document(receipt, tx_index, tx_hash, block_hash)
        tx_hash = document[TransactionReceiptFields.TRANSACTION_HASH.value]
        block_hash = document[TransactionReceiptFields.BLOCK_HASH.value]

        # A different receipt at the same position is replaced
        occupant = self.session.query(ReceiptIndexModel.transaction_hash).filter_by(
            block_hash=block_hash, tx_index=tx_index).first()
        if occupant is not None and occupant.transaction_hash != tx_hash:
            logger.debug(f"Receipt {occupant.transaction_hash[:16]} replaced at position {tx_index} of block {block_hash[:16]}")
            self._delete_receipt(occupant.transaction_hash)

        upsert(self.session, ReceiptIndexModel, {
            "transaction_hash": tx_hash,
            "block_hash": block_hash,
            "tx_index": tx_index,
            "state_root": receipt.state_root,
            "status": receipt.status,
            "cumulative_gas_used": receipt.cumulative_gas_used,
            "bloom_filter": document[TransactionReceiptFields.BLOOM_FILTER.value],
        }, keys=("transaction_hash",))

        self.session.query(ReceiptLogIndexModel).filter_by(transaction_hash=tx_hash).delete()
        for log in receipt.logs:
            for topic in log.topics or (None,):
                self.session.add(ReceiptLogIndexModel(transaction_hash=tx_hash, logger=log.logger, topic=topic))
        self.session.flush()


class SqlBlockchainIndex(BlockchainIndex):
    """Blockchain index stored in SQL tables"""

    def __init__(self, backend: SqlStorageBackend):
        self.backend = backend

    async def index(self, mutator: Mutator) -> None:
        def _apply(session: Session) -> None:
            mutator(_SqlIndexWriter(session))

        await self.backend.run(_apply)

    @staticmethod
    def _header_value(field: BlockHeaderFields, value: Any) -> Any:
        value = normalize_field_value(field, value)
        if field in DIFFICULTY_FIELDS and value is not None:
            return pad_difficulty(value)
        return value

    async def find_by(self, field: IndexField, value: Any) -> list[str]:
        def _find(session: Session) -> list[str]:
            if isinstance(field, BlockHeaderFields):
                column = getattr(HeaderIndexModel, field.value)
                query = session.query(HeaderIndexModel.hash).filter(column == self._header_value(field, value))
                return [row.hash for row in query.order_by(HeaderIndexModel.id)]

            normalized = normalize_field_value(field, value)
            if field in LOG_COLUMNS:
                matching = select(ReceiptLogIndexModel.transaction_hash).where(LOG_COLUMNS[field] == normalized)
                condition = ReceiptIndexModel.transaction_hash.in_(matching)
            else:
                column = RECEIPT_COLUMNS.get(field, getattr(ReceiptIndexModel, field.value, None))
                condition = column == normalized
            query = session.query(ReceiptIndexModel.transaction_hash).filter(condition)
            query = query.order_by(ReceiptIndexModel.block_hash, ReceiptIndexModel.tx_index)
            return [row.transaction_hash for row in query]

        return await self.backend.run(_find)

    async def find_by_largest(self, field: IndexField) -> str | None:
        if isinstance(field, BlockHeaderFields):
            if field not in NUMERIC_HEADER_FIELDS:
                raise ValueError(f"{field.name} is not a numeric field")
            model, key_column = HeaderIndexModel, HeaderIndexModel.hash
            column = getattr(HeaderIndexModel, field.value)
        else:
            if field not in NUMERIC_RECEIPT_FIELDS:
                raise ValueError(f"{field.name} is not a numeric field")
            model, key_column = ReceiptIndexModel, ReceiptIndexModel.transaction_hash
            column = RECEIPT_COLUMNS.get(field, getattr(ReceiptIndexModel, field.value, None))

        def _find(session: Session) -> str | None:
            row = (session.query(key_column)
                   .filter(column.isnot(None))
                   .order_by(column.desc(), model.id.asc())
                   .first())
            return row[0] if row is not None else None

        return await self.backend.run(_find)

    async def find_by_block_hash_and_index(self, block_hash: str, index: int) -> str | None:
        block_hash = normalize_hash(block_hash)

        def _find(session: Session) -> str | None:
            row = session.query(ReceiptIndexModel.transaction_hash).filter_by(
                block_hash=block_hash, tx_index=index).first()
            return row.transaction_hash if row is not None else None

        return await self.backend.run(_find)

    async def find_by_hash_or_number(self, value: str | bytes | int) -> list[str]:
        hash_term, number = hash_or_number_terms(value)
        conditions = []
        if hash_term is not None:
            conditions.append(HeaderIndexModel.hash == hash_term)
        if number is not None:
            conditions.append(HeaderIndexModel.number == number)
        if not conditions:
            return []

        def _find(session: Session) -> list[str]:
            query = session.query(HeaderIndexModel.hash).filter(or_(*conditions)).order_by(HeaderIndexModel.id)
            return [row.hash for row in query]

        return await self.backend.run(_find)

    async def total_difficulty(self, header_hash: str) -> int | None:
        header_hash = normalize_hash(header_hash)

        def _find(session: Session) -> int | None:
            row = session.query(HeaderIndexModel.total_difficulty).filter_by(hash=header_hash).first()
            return int(row.total_difficulty) if row is not None else None

        return await self.backend.run(_find)
