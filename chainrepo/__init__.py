"""
ChainRepo
=========

A repository layer for persisting and querying blockchain data: blocks,
block headers, transaction receipts and chain metadata, kept consistent
with a secondary index.
"""

from chainrepo.units.version import get_version

VERSION = (0, 1, 0, "dev", 2)

__version__ = get_version(VERSION)

__all__ = ["VERSION", "__version__"]
