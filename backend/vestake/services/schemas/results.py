"""Result dataclasses produced by the computation services."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from vestake.enums import Grouping, LockupKind, Pool, SubNetwork
from vestake.services._helpers import PRECISION_FACTOR


@dataclass(frozen=True, slots=True)
class DecayInfo:
    """Per-second fall rates and the discrete steps at genesis end and lockup end.

    Rates and corrections carry PRECISION_FACTOR like the weight itself.
    """

    has_genesis: bool = False
    pre_genesis_end_fall_rate: int = 0
    post_genesis_end_fall_rate: int = 0
    genesis_end_weight_correction: int = 0
    genesis_end_fall_rate_correction: int = 0
    end_weight_correction: int = 0
    end_fall_rate_correction: int = 0


@dataclass(frozen=True, slots=True)
class Delegation:
    key: str
    position_key: str
    sub_network: SubNetwork
    last_claimed_epoch: int
    pending_rewards: int
    purged: bool = False


@dataclass(frozen=True, slots=True)
class Position:
    key: str
    owner: str
    mint: str
    grouping: Grouping
    locked_tokens: int
    start_ts: int
    end_ts: int
    genesis_end_ts: int | None
    lockup_kind: LockupKind
    voting_weight: int  # precise, scaled by PRECISION_FACTOR
    decay: DecayInfo = field(default_factory=DecayInfo)
    delegation: Delegation | None = None

    @property
    def duration_s(self) -> int:
        return self.end_ts - self.start_ts

    @property
    def vehnt(self) -> int:
        """Voting weight with the precision scale removed."""
        return self.voting_weight // PRECISION_FACTOR

    @property
    def sub_network(self) -> SubNetwork | None:
        return self.delegation.sub_network if self.delegation else None


@dataclass(frozen=True, slots=True)
class EpochSummary:
    epoch: int
    iot_dc_burned: int
    mobile_dc_burned: int
    iot_weight_at_epoch_start: int
    mobile_weight_at_epoch_start: int
    iot_delegation_rewards_issued: int
    mobile_delegation_rewards_issued: int
    iot_utility_score: int | None
    mobile_utility_score: int | None
    epoch_start_ts: int | None
    rewards_issued_at_ts: int | None
    initialized: bool

    def weight_at_start(self, sub_network: SubNetwork) -> int:
        match sub_network:
            case SubNetwork.IOT:
                return self.iot_weight_at_epoch_start
            case SubNetwork.MOBILE:
                return self.mobile_weight_at_epoch_start
        raise ValueError(f"no epoch weight for sub-network {sub_network.value}")

    def rewards_issued(self, sub_network: SubNetwork) -> int:
        match sub_network:
            case SubNetwork.IOT:
                return self.iot_delegation_rewards_issued
            case SubNetwork.MOBILE:
                return self.mobile_delegation_rewards_issued
        raise ValueError(f"no epoch rewards for sub-network {sub_network.value}")


@dataclass(frozen=True, slots=True)
class PoolTotals:
    count: int = 0
    voting_weight: int = 0
    locked_tokens: int = 0
    lockup_secs: int = 0
    fall_rate: int = 0


@dataclass(frozen=True, slots=True)
class PoolStats:
    avg_voting_weight: int
    median_voting_weight: int
    avg_locked_tokens: int
    median_locked_tokens: int
    avg_lockup_secs: int
    median_lockup_secs: int


@dataclass(frozen=True, slots=True)
class PoolData:
    totals: PoolTotals
    stats: PoolStats | None  # None for an empty pool


@dataclass(frozen=True, slots=True)
class GroupingData:
    grouping: Grouping
    positions: tuple[Position, ...]
    pools: Mapping[Pool, PoolData]
    delegated_positions: tuple[Position, ...] = ()


@dataclass(frozen=True, slots=True)
class LockedBalances:
    vehnt: int = 0
    iot_delegated: int = 0
    mobile_delegated: int = 0
    undelegated: int = 0
    locked_hnt: int = 0
    pending_iot: int = 0
    pending_mobile: int = 0
    veiot: int = 0
    locked_iot: int = 0
    vemobile: int = 0
    locked_mobile: int = 0

    def weight_for(self, grouping: Grouping) -> int:
        match grouping:
            case Grouping.HNT:
                return self.vehnt
            case Grouping.IOT:
                return self.veiot
            case Grouping.MOBILE:
                return self.vemobile


@dataclass(frozen=True, slots=True)
class OwnerAccount:
    owner: str
    positions: Mapping[Grouping, tuple[str, ...]] = field(
        default_factory=lambda: {grouping: () for grouping in Grouping}
    )
    balances: LockedBalances = field(default_factory=LockedBalances)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One self-consistent aggregation result. Never mutated once built."""

    timestamp: int
    groupings: Mapping[Grouping, GroupingData]
    owners: Mapping[str, OwnerAccount]
    epochs: tuple[EpochSummary, ...] = ()

    def grouping(self, grouping: Grouping) -> GroupingData:
        return self.groupings[grouping]

    def pool(self, grouping: Grouping, pool: Pool) -> PoolData:
        return self.groupings[grouping].pools[pool]


@dataclass
class RefreshResult:
    success: bool
    timestamp: int | None
    position_count: int
    duration_secs: float
    error: str | None = None


@dataclass
class ExportResult:
    output_path: Path
    row_count: int
    kind: str
