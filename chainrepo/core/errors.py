"""
Exceptions raised by the ChainRepo repository layer.

A read for an unknown key is not an error: lookups return None.
The exceptions below signal data that is present but unusable, a chain
whose structure is corrupt, or a caller precondition that was violated.
Store and index backend errors are not wrapped; they propagate unchanged.
"""


class RepositoryError(Exception):
    """Base exception for repository errors."""
    pass


class DecodeError(RepositoryError):
    """Stored bytes could not be decoded into the requested record."""

    def __init__(self, record_type: str, reason: str):
        self.record_type = record_type
        self.reason = reason
        super().__init__(f"Cannot decode {record_type}: {reason}")


class HeaderCycleError(RepositoryError):
    """The re-indexing sweep reached a header hash it had already visited."""

    def __init__(self, cycle_hashes: list[str]):
        self.cycle_hashes = list(cycle_hashes)
        joined = ", ".join(h[:16] for h in self.cycle_hashes)
        super().__init__(f"Parent-hash cycle detected while re-indexing headers: {joined}")


class GenesisMismatchError(RepositoryError):
    """The chain metadata already records a different genesis block."""

    def __init__(self, stored_hash: str, genesis_hash: str):
        self.stored_hash = stored_hash
        self.genesis_hash = genesis_hash
        super().__init__(
            f"Chain already initialized with genesis {stored_hash}, refusing genesis {genesis_hash}"
        )


class ConfigurationError(ValueError):
    """Settings cannot be turned into stores and an index."""
    pass
