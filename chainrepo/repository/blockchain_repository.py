"""
Blockchain repository for ChainRepo.

This module implements the repository housing blockchain information. It
stores blocks, block headers, transaction receipts and chain metadata in
key-value stores and keeps a blockchain index consistent with them:
- raw bytes are always put before the matching index update
- the chain head is computed from the index, never stored
- headers that arrived before their parent are re-indexed once the parent is indexed
"""

import logging
from typing import Sequence

from chainrepo.core.block import Block, BlockHeader
from chainrepo.core.errors import GenesisMismatchError, HeaderCycleError
from chainrepo.core.receipt import TransactionReceipt
from chainrepo.core.utils import hash_to_key, key_to_hash, normalize_hash
from chainrepo.repository.fields import BlockHeaderFields, TransactionReceiptFields
from chainrepo.repository.index import BlockchainIndex
from chainrepo.repository.reindex import CycleDetected, ReindexWorklist
from chainrepo.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

Hash = str | bytes


class BlockchainRepository:
    """
    Repository housing blockchain information.

    The repository allows storing blocks, block headers and metadata about the
    blockchain, such as the genesis block and head information. It keeps no
    state besides the stores and the index it was given, so it can be shared
    by concurrent tasks as long as those backends can.
    """

    GENESIS_BLOCK = b"genesisBlock"

    def __init__(
        self,
        chain_metadata: KeyValueStore,
        block_store: KeyValueStore,
        block_header_store: KeyValueStore,
        transaction_receipts_store: KeyValueStore,
        blockchain_index: BlockchainIndex
    ):
        """
        Initialize the repository.

        Args:
            chain_metadata: Key-value store for chain metadata
            block_store: Key-value store for blocks
            block_header_store: Key-value store for block headers
            transaction_receipts_store: Key-value store for transaction receipts
            blockchain_index: Index over headers and receipts
        """
        self.chain_metadata = chain_metadata
        self.block_store = block_store
        self.block_header_store = block_header_store
        self.transaction_receipts_store = transaction_receipts_store
        self.blockchain_index = blockchain_index

    @classmethod
    async def init(
        cls,
        block_store: KeyValueStore,
        block_header_store: KeyValueStore,
        chain_metadata: KeyValueStore,
        transaction_receipts_store: KeyValueStore,
        blockchain_index: BlockchainIndex,
        genesis_block: Block
    ) -> 'BlockchainRepository':
        """
        Initialize a blockchain repository, placing the genesis block in the stores.

        Reopening a chain with the genesis it was created with leaves the stores untouched.

        Returns:
            A new blockchain repository bound to the stores passed in parameter

        Raises:
            GenesisMismatchError: If the chain metadata records another genesis block
        """
        repo = cls(chain_metadata, block_store, block_header_store,
                   transaction_receipts_store, blockchain_index)

        stored = await chain_metadata.get(cls.GENESIS_BLOCK)
        if stored is not None:
            stored_hash = key_to_hash(stored)
            if stored_hash != genesis_block.hash:
                raise GenesisMismatchError(stored_hash, genesis_block.hash)
            logger.info(f"Reopened blockchain repository with genesis {genesis_block.hash[:16]}")
            return repo

        await repo._set_genesis_block(genesis_block)
        await repo.store_block(genesis_block)
        logger.info(f"Initialized blockchain repository with genesis {genesis_block.hash[:16]}")
        return repo

    async def _set_genesis_block(self, block: Block) -> None:
        await self.chain_metadata.put(self.GENESIS_BLOCK, hash_to_key(block.hash))

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def store_block(self, block: Block) -> None:
        """
        Store a block in the repository.

        Block bytes and header bytes are put under the header hash before
        the header is indexed.

        Args:
            block: The block to store
        """
        key = hash_to_key(block.hash)
        await self.block_store.put(key, block.to_bytes())
        await self.block_header_store.put(key, block.header.to_bytes())
        logger.debug(f"Stored block #{block.header.number} ({block.hash[:16]})")
        await self._index_block_header(block.header)

    async def store_block_header(self, header: BlockHeader) -> None:
        """
        Store a block header in the repository.

        Args:
            header: The block header to store
        """
        await self.block_header_store.put(hash_to_key(header.hash), header.to_bytes())
        logger.debug(f"Stored header #{header.number} ({header.hash[:16]})")
        await self._index_block_header(header)

    async def store_transaction_receipts(
        self,
        transaction_receipts: Sequence[TransactionReceipt],
        tx_hashes: Sequence[Hash],
        block_hash: Hash
    ) -> None:
        """
        Store all the transaction receipts of a block in the repository.

        Transaction receipts should be ordered by the transactions order of the
        block; the position in the sequence becomes the receipt's index.

        Args:
            transaction_receipts: The transaction receipts to store
            tx_hashes: The hash of the transaction of each receipt
            block_hash: The hash of the block the transactions belong to
        """
        if len(transaction_receipts) != len(tx_hashes):
            raise ValueError(
                f"{len(transaction_receipts)} receipts but {len(tx_hashes)} transaction hashes"
            )
        for tx_index, (receipt, tx_hash) in enumerate(zip(transaction_receipts, tx_hashes)):
            await self.store_transaction_receipt(receipt, tx_index, tx_hash, block_hash)

    async def store_transaction_receipt(
        self,
        transaction_receipt: TransactionReceipt,
        tx_index: int,
        tx_hash: Hash,
        block_hash: Hash
    ) -> None:
        """
        Store a transaction receipt in the repository.

        Args:
            transaction_receipt: The transaction receipt to store
            tx_index: The index of the transaction in the block
            tx_hash: The hash of the transaction
            block_hash: The hash of the block the transaction belongs to
        """
        if tx_index < 0:
            raise ValueError("tx_index must not be negative")
        tx_hash, block_hash = normalize_hash(tx_hash), normalize_hash(block_hash)

        await self.transaction_receipts_store.put(hash_to_key(tx_hash), transaction_receipt.to_bytes())
        await self.blockchain_index.index(
            lambda writer: writer.index_transaction_receipt(transaction_receipt, tx_index, tx_hash, block_hash)
        )
        logger.debug(f"Stored receipt {tx_index} of block {block_hash[:16]}")

    async def _index_block_header(self, header: BlockHeader) -> None:
        """
        Index a header, then re-index every already indexed descendant.

        Raises:
            HeaderCycleError: If the sweep reaches a header it already visited
        """
        worklist = ReindexWorklist(header.hash)
        cycles = []

        while worklist:
            header_hash = worklist.pop()
            if header_hash == header.hash:
                current = header
            else:
                current = await self.retrieve_block_header(header_hash)
                if current is None:
                    logger.debug(f"Indexed child {header_hash[:16]} has no stored header, skipping")
                    continue
                logger.debug(f"Re-indexing header #{current.number} ({header_hash[:16]})")

            await self.blockchain_index.index(lambda writer, h=current: writer.index_block_header(h))

            step = worklist.expand(await self.find_blocks_by_parent_hash(header_hash))
            if isinstance(step, CycleDetected):
                logger.warning(f"Parent-hash cycle at {step.header_hash[:16]} while indexing {header.hash[:16]}")
                cycles.append(step.header_hash)
            elif step.next_batch:
                logger.debug(f"Queued {len(step.next_batch)} children of {header_hash[:16]} for re-indexing")

        if cycles:
            raise HeaderCycleError(cycles)

    # ------------------------------------------------------------------
    # Blocks and headers
    # ------------------------------------------------------------------

    async def retrieve_block_bytes(self, block_hash: Hash) -> bytes | None:
        """
        Retrieve a block as its serialized bytes representation.

        Args:
            block_hash: The hash of the block stored

        Returns:
            The bytes if found, None otherwise
        """
        return await self.block_store.get(hash_to_key(block_hash))

    async def retrieve_block(self, block_hash: Hash) -> Block | None:
        """
        Retrieve a block.

        Args:
            block_hash: The hash of the block stored

        Returns:
            The block if found, None otherwise

        Raises:
            DecodeError: If the stored bytes are not a block
        """
        data = await self.retrieve_block_bytes(block_hash)
        if data is None:
            return None
        return Block.from_bytes(data)

    async def retrieve_block_header_bytes(self, block_hash: Hash) -> bytes | None:
        """
        Retrieve a block header as its serialized bytes representation.

        Args:
            block_hash: The hash of the block stored

        Returns:
            The block header bytes if found, None otherwise
        """
        return await self.block_header_store.get(hash_to_key(block_hash))

    async def retrieve_block_header(self, block_hash: Hash) -> BlockHeader | None:
        """
        Retrieve a block header.

        Args:
            block_hash: The hash of the block stored

        Returns:
            The block header if found, None otherwise

        Raises:
            DecodeError: If the stored bytes are not a block header
        """
        data = await self.retrieve_block_header_bytes(block_hash)
        if data is None:
            return None
        return BlockHeader.from_bytes(data)

    async def retrieve_chain_head(self) -> Block | None:
        """
        Retrieve the block identified as the chain head.

        Returns:
            The indexed block with the largest total difficulty, or the genesis
            block if no chain head is present
        """
        head_hash = await self.blockchain_index.find_by_largest(BlockHeaderFields.TOTAL_DIFFICULTY)
        if head_hash is not None:
            block = await self.retrieve_block(head_hash)
            if block is not None:
                return block
        return await self.retrieve_genesis_block()

    async def retrieve_chain_head_header(self) -> BlockHeader | None:
        """
        Retrieve the block header identified as the chain head.

        Returns:
            The indexed header with the largest total difficulty, or the genesis
            header if no chain head is present
        """
        head_hash = await self.blockchain_index.find_by_largest(BlockHeaderFields.TOTAL_DIFFICULTY)
        if head_hash is not None:
            header = await self.retrieve_block_header(head_hash)
            if header is not None:
                return header
        genesis = await self.retrieve_genesis_block()
        return genesis.header if genesis is not None else None

    async def retrieve_genesis_block(self) -> Block | None:
        """
        Retrieve the block identified as the genesis block.

        Returns:
            The genesis block, None if the chain metadata records none
        """
        genesis_key = await self.chain_metadata.get(self.GENESIS_BLOCK)
        if genesis_key is None:
            return None
        return await self.retrieve_block(genesis_key)

    # ------------------------------------------------------------------
    # Transaction receipts
    # ------------------------------------------------------------------

    async def _load_receipt(self, tx_hash: Hash) -> TransactionReceipt | None:
        data = await self.transaction_receipts_store.get(hash_to_key(tx_hash))
        if data is None:
            return None
        return TransactionReceipt.from_bytes(data)

    async def retrieve_transaction_receipts(self, block_hash: Hash) -> list[TransactionReceipt]:
        """
        Retrieve all transaction receipts associated with a block.

        Args:
            block_hash: The hash of the block

        Returns:
            The receipts of the block, ordered by transaction index
        """
        receipts = []
        for tx_hash in await self.blockchain_index.find_by(TransactionReceiptFields.BLOCK_HASH, block_hash):
            receipt = await self._load_receipt(tx_hash)
            if receipt is None:
                logger.warning(f"Indexed receipt {tx_hash[:16]} missing from the receipt store")
                continue
            receipts.append(receipt)
        return receipts

    async def retrieve_transaction_receipt(self, block_hash: Hash, index: int) -> TransactionReceipt | None:
        """
        Retrieve a transaction receipt associated with a block and an index.

        Args:
            block_hash: The hash of the block
            index: The index of the transaction in the block
        """
        tx_hash = await self.blockchain_index.find_by_block_hash_and_index(block_hash, index)
        if tx_hash is None:
            return None
        return await self._load_receipt(tx_hash)

    async def retrieve_transaction_receipt_by_hash(self, tx_hash: Hash) -> TransactionReceipt | None:
        """
        Retrieve a transaction receipt by the hash of its transaction.

        Args:
            tx_hash: The hash of the transaction
        """
        return await self._load_receipt(tx_hash)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def find_block_by_hash_or_number(self, block_number_or_block_hash: Hash | int) -> list[str]:
        """
        Find blocks by a value that can be a block number or a block hash.

        Args:
            block_number_or_block_hash: The number or hash of the block

        Returns:
            The hashes of the matching blocks
        """
        return await self.blockchain_index.find_by_hash_or_number(block_number_or_block_hash)

    async def find_blocks_by_parent_hash(self, parent_hash: Hash) -> list[str]:
        """
        Find hashes of blocks which have a matching parent hash.

        Args:
            parent_hash: The parent hash

        Returns:
            The hashes of the matching blocks
        """
        return await self.blockchain_index.find_by(BlockHeaderFields.PARENT_HASH, parent_hash)
