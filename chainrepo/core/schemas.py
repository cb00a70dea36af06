"""
Arrow Schemas for ChainRepo Core Data Structures.

This module defines the Apache Arrow schemas used for:
- BlockHeaders: consensus fields of a block
- Blocks: a header plus its transactions and ommers
- TransactionReceipts: outcome of one transaction, with its logs

Every record is encoded as a single-row table written to an Arrow IPC stream.
Values that may exceed 64 bits (difficulty, wei amounts) are stored as decimal strings;
nonces use the full unsigned 64-bit range.
"""

from typing import Any

import pyarrow as pa

from chainrepo.core.errors import DecodeError


HEADER_FIELDS = [
    ('parent_hash', pa.string()),
    ('ommers_hash', pa.string()),
    ('coinbase', pa.string()),
    ('state_root', pa.string()),
    ('transactions_root', pa.string()),
    ('receipts_root', pa.string()),
    ('logs_bloom', pa.binary()),
    ('difficulty', pa.string()),
    ('number', pa.int64()),
    ('gas_limit', pa.int64()),
    ('gas_used', pa.int64()),
    ('timestamp', pa.int64()),
    ('extra_data', pa.binary()),
    ('mix_hash', pa.string()),
    ('nonce', pa.uint64()),
]

TRANSACTION_FIELDS = [
    ('nonce', pa.uint64()),
    ('gas_price', pa.string()),
    ('gas_limit', pa.int64()),
    ('to', pa.string()),           # null for contract creation
    ('value', pa.string()),
    ('payload', pa.binary()),
]

LOG_FIELDS = [
    ('logger', pa.string()),
    ('topics', pa.list_(pa.string())),
    ('data', pa.binary()),
]


# Block Header Schema
BLOCK_HEADER_SCHEMA = pa.schema(HEADER_FIELDS)


# Block Schema - header struct plus body lists
BLOCK_SCHEMA = pa.schema([
    ('header', pa.struct(HEADER_FIELDS)),
    ('transactions', pa.list_(pa.struct(TRANSACTION_FIELDS))),
    ('ommers', pa.list_(pa.struct(HEADER_FIELDS))),
])


# Transaction Receipt Schema - state_root for pre-status receipts, status otherwise
TRANSACTION_RECEIPT_SCHEMA = pa.schema([
    ('state_root', pa.string()),
    ('status', pa.int64()),
    ('cumulative_gas_used', pa.int64()),
    ('bloom_filter', pa.binary()),
    ('logs', pa.list_(pa.struct(LOG_FIELDS))),
])


def get_block_header_schema() -> pa.Schema:
    """Return the Arrow schema for a Block Header."""
    return BLOCK_HEADER_SCHEMA


def get_block_schema() -> pa.Schema:
    """Return the Arrow schema for a full Block (header + body)."""
    return BLOCK_SCHEMA


def get_transaction_receipt_schema() -> pa.Schema:
    """Return the Arrow schema for a Transaction Receipt."""
    return TRANSACTION_RECEIPT_SCHEMA


def encode_record(schema: pa.Schema, row: dict[str, Any]) -> bytes:
    """
    Encode one record as an Arrow IPC stream.

    Args:
        schema: Schema the row conforms to
        row: Column name to Python value mapping

    Returns:
        Bytes of the IPC stream holding a single-row table
    """
    table = pa.Table.from_pylist([row], schema=schema)
    sink = pa.BufferOutputStream()
    with pa.ipc.new_stream(sink, schema) as writer:
        writer.write_table(table)
    return sink.getvalue().to_pybytes()


def decode_record(schema: pa.Schema, data: bytes, record_type: str) -> dict[str, Any]:
    """
    Decode bytes produced by encode_record.

    Args:
        schema: Schema the stream must carry
        data: IPC stream bytes
        record_type: Name used in the error message

    Returns:
        The single row as a dictionary

    Raises:
        DecodeError: If the bytes are not a stream of exactly one row of this schema
    """
    try:
        reader = pa.ipc.open_stream(pa.py_buffer(data))
        table = reader.read_all()
    except (pa.ArrowException, ValueError, OSError) as e:
        raise DecodeError(record_type, str(e)) from e

    if not table.schema.equals(schema):
        raise DecodeError(record_type, "schema mismatch")
    if table.num_rows != 1:
        raise DecodeError(record_type, f"expected 1 row, found {table.num_rows}")

    return table.to_pylist()[0]
