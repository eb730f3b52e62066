"""Shared dataclasses for vestake services."""

from vestake.services.schemas.chain import (
    AccountData,
    Lockup,
    RawDelegation,
    RawPosition,
    Registrar,
    SubNetworkEpochInfo,
    VotingMintConfig,
)
from vestake.services.schemas.results import (
    DecayInfo,
    Delegation,
    EpochSummary,
    ExportResult,
    GroupingData,
    LockedBalances,
    OwnerAccount,
    PoolData,
    PoolStats,
    PoolTotals,
    Position,
    RefreshResult,
    Snapshot,
)

__all__ = [
    # Chain schemas
    "AccountData",
    "Lockup",
    "RawDelegation",
    "RawPosition",
    "Registrar",
    "SubNetworkEpochInfo",
    "VotingMintConfig",
    # Result schemas
    "DecayInfo",
    "Delegation",
    "EpochSummary",
    "ExportResult",
    "GroupingData",
    "LockedBalances",
    "OwnerAccount",
    "PoolData",
    "PoolStats",
    "PoolTotals",
    "Position",
    "RefreshResult",
    "Snapshot",
]
