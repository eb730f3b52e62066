"""Typed dicts for service-layer return values.

Keeps route-facing methods explicit about their shape instead of returning bare dicts.
Voting weights in these shapes are descaled (PRECISION_FACTOR removed).
"""

from typing import TypedDict

# -- Positions ---------------------------------------------------------------


class DelegationDict(TypedDict):
    delegated_position_key: str
    sub_dao: str
    last_claimed_epoch: int
    pending_rewards: int


class PositionDict(TypedDict):
    position_key: str
    owner: str
    mint: str
    locked_tokens: int
    start_ts: int
    genesis_end_ts: int
    end_ts: int
    duration_s: int
    voting_weight: int
    lockup_type: str
    delegated: DelegationDict | None


class LegacyPositionDict(TypedDict):
    position_key: str
    delegated_position_key: str
    hnt_amount: int
    sub_dao: str
    last_claimed_epoch: int
    start_ts: int
    genesis_end_ts: int
    end_ts: int
    duration_s: int
    purged: bool
    vehnt: int
    lockup_type: str


class PositionsPageDict(TypedDict):
    timestamp: int
    positions: list[PositionDict]
    positions_total_len: int


class DelegatedPageDict(TypedDict):
    timestamp: int
    delegated_positions: list[LegacyPositionDict]
    positions_total_len: int


# -- Metadata ----------------------------------------------------------------


class PoolTotalsDict(TypedDict):
    count: int
    vehnt: int
    hnt: int
    lockup: int
    fall_rate: int


class PoolStatsDict(TypedDict):
    avg_vehnt: int
    median_vehnt: int
    avg_hnt: int
    median_hnt: int
    avg_lockup: int
    median_lockup: int


class PoolDict(TypedDict):
    total: PoolTotalsDict
    stats: PoolStatsDict | None


class MetadataDict(TypedDict):
    timestamp: int
    network: PoolDict
    undelegated: PoolDict
    iot: PoolDict
    mobile: PoolDict
    veiot: PoolDict
    vemobile: PoolDict


# -- Accounts ----------------------------------------------------------------


class VehntBalanceDict(TypedDict):
    total: int
    iot_delegated: int
    mobile_delegated: int
    undelegated: int


class LockedBalancesDict(TypedDict):
    vehnt: VehntBalanceDict
    locked_hnt: int
    pending_iot: int
    pending_mobile: int
    veiot: int
    locked_iot: int
    vemobile: int
    locked_mobile: int


class AccountPositionsDict(TypedDict):
    vehnt: list[PositionDict]
    veiot: list[PositionDict]
    vemobile: list[PositionDict]


class AccountDict(TypedDict):
    owner: str
    timestamp: int
    balances: LockedBalancesDict
    positions: AccountPositionsDict


class PositionKeysDict(TypedDict):
    vehnt: list[str]
    veiot: list[str]
    vemobile: list[str]


class TopOwnerDict(TypedDict):
    pubkey: str
    positions: PositionKeysDict
    balances: LockedBalancesDict


class TopOwnersDict(TypedDict):
    timestamp: int
    top: list[TopOwnerDict]


# -- Epochs ------------------------------------------------------------------


class EpochSummaryDict(TypedDict):
    epoch: int
    iot_dc_burned: int
    mobile_dc_burned: int
    iot_vehnt_at_epoch_start: int
    mobile_vehnt_at_epoch_start: int
    iot_delegation_rewards_issued: int
    mobile_delegation_rewards_issued: int
    iot_utility_score: int | None
    mobile_utility_score: int | None
    epoch_start_at_ts: int | None
    rewards_issued_at_ts: int | None
    rewards_issued_at: str | None
    initialized: bool


# -- Status ------------------------------------------------------------------


class RefreshStatusDict(TypedDict):
    state: str
    cycles: int
    consecutive_failures: int
    last_success_ts: int | None
    last_error: str | None


class StatusDict(TypedDict):
    initialized: bool
    latest_timestamp: int | None
    history_timestamps: list[int]
    refresh: RefreshStatusDict | None


class ExportDataDict(TypedDict):
    filename: str
    content: str
    row_count: int
