"""Shared exception hierarchy for vestake services."""

# ── Chain ─────────────────────────────────────────────────────────────────────


class ChainClientError(Exception):
    """Base exception for chain client errors."""


class RPCError(ChainClientError):
    """RPC call failed."""


class AccountNotFoundError(ChainClientError):
    """Requested account does not exist."""


class ChainConnectionError(ChainClientError):
    """Cannot connect to RPC endpoint."""


# ── Decoding ──────────────────────────────────────────────────────────────────


class DecodeError(Exception):
    """Account bytes are short, truncated or carry the wrong discriminator."""


# ── Data integrity ────────────────────────────────────────────────────────────


class DataIntegrityError(Exception):
    """Base exception for inconsistent decoded data."""


class UnknownSubNetworkError(DataIntegrityError):
    """A record references a sub-network outside the known set."""


class MissingPositionError(DataIntegrityError):
    """An index references a position that is not in the snapshot."""


class EpochContiguityError(DataIntegrityError):
    """Epoch history is not indexed contiguously."""


class EpochDataError(DataIntegrityError):
    """An epoch needed for reward math lacks required fields."""


class MissingMintConfigError(DataIntegrityError):
    """Positions of a mint were decoded but its voting mint config is absent."""


# ── Numeric ───────────────────────────────────────────────────────────────────


class NumericError(Exception):
    """Base exception for arithmetic that left its allowed domain."""


class VotingWeightOverflowError(NumericError):
    """Voting weight exceeded 128 bits."""


class NumericOverflowError(NumericError):
    """An accumulated value exceeded 64 bits."""


class RewardMathError(NumericError):
    """Reward share could not be computed (zero denominator)."""


class InvalidDecayConfigError(NumericError):
    """Decay configuration cannot produce a weight."""


# ── Query ─────────────────────────────────────────────────────────────────────


class QueryError(Exception):
    """Base exception for conditions surfaced to readers."""


class DataNotInitializedError(QueryError):
    """No snapshot has been installed yet."""

    def __init__(self, message: str = "Data not initialized yet. Please try again in a few minutes.") -> None:
        super().__init__(message)


class SnapshotNotFoundError(QueryError):
    """No cached snapshot for the requested timestamp."""


class InvalidPageError(QueryError):
    """Pagination window starts past the end of the list."""


class InvalidPubkeyError(QueryError):
    """Value is not a base58 encoded 32-byte key."""


class PositionNotFoundError(QueryError):
    """Key is not a known position."""
