"""
SQLAlchemy Models for ChainRepo Storage.

This module defines the database schema used by the SQL backend:
- kv_entries: the content stores (blocks, headers, receipts, metadata),
  one namespace per store
- header_index / receipt_index / receipt_log_index: the secondary index

Index rows are derived data and can be rebuilt from the content stores.
"""

import time
from sqlalchemy import Column, Integer, BigInteger, String, Float, LargeBinary, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Total difficulty fits in 78 decimal digits (UInt256); zero-padding keeps string order numeric
DIFFICULTY_DIGITS = 78


def pad_difficulty(value: int) -> str:
    """Encode a difficulty so that string ordering matches numeric ordering."""
    return str(int(value)).zfill(DIFFICULTY_DIGITS)


class KeyValueModel(Base):
    """
    Represents one key of one content store.
    """
    __tablename__ = 'kv_entries'

    namespace = Column(String(32), primary_key=True)
    key = Column(LargeBinary(64), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(Float, default=time.time, onupdate=time.time)

    def __repr__(self):
        return f"<KeyValue(namespace='{self.namespace}', key='{self.key.hex()[:8]}...')>"


class HeaderIndexModel(Base):
    """
    Indexed fields of a block header.
    """
    __tablename__ = 'header_index'

    # Insertion order breaks total difficulty ties
    id = Column(Integer, primary_key=True, autoincrement=True)
    hash = Column(String(64), unique=True, nullable=False, index=True)
    parent_hash = Column(String(64), nullable=False, index=True)
    ommers_hash = Column(String(64), nullable=False)
    coinbase = Column(String(64), nullable=False, index=True)
    state_root = Column(String(64), nullable=False)
    difficulty = Column(String(DIFFICULTY_DIGITS), nullable=False)
    number = Column(BigInteger, nullable=False, index=True)
    gas_limit = Column(BigInteger, nullable=False)
    gas_used = Column(BigInteger, nullable=False)
    extra_data = Column(String, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    total_difficulty = Column(String(DIFFICULTY_DIGITS), nullable=False, index=True)

    def __repr__(self):
        return f"<HeaderIndex(number={self.number}, hash='{self.hash[:8]}...')>"


class ReceiptIndexModel(Base):
    """
    Indexed fields of a transaction receipt.
    """
    __tablename__ = 'receipt_index'
    __table_args__ = (UniqueConstraint('block_hash', 'tx_index', name='uq_receipt_position'),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_hash = Column(String(64), unique=True, nullable=False, index=True)
    block_hash = Column(String(64), nullable=False, index=True)
    tx_index = Column(Integer, nullable=False)
    state_root = Column(String(64), nullable=True)
    status = Column(Integer, nullable=True)
    cumulative_gas_used = Column(BigInteger, nullable=False)
    bloom_filter = Column(String, nullable=False)

    def __repr__(self):
        return f"<ReceiptIndex(block='{self.block_hash[:8]}...', index={self.tx_index})>"


class ReceiptLogIndexModel(Base):
    """
    One (logger, topic) pair of a receipt's logs; topic is null for logs without topics.
    """
    __tablename__ = 'receipt_log_index'

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_hash = Column(String(64), nullable=False, index=True)
    logger = Column(String(64), nullable=False, index=True)
    topic = Column(String(64), nullable=True, index=True)

    def __repr__(self):
        return f"<ReceiptLogIndex(logger='{self.logger}', topic='{self.topic}')>"
