"""Position and pool metadata response schemas."""

from pydantic import BaseModel, Field


class DelegationResponse(BaseModel):
    delegated_position_key: str
    sub_dao: str
    last_claimed_epoch: int
    pending_rewards: int


class PositionResponse(BaseModel):
    position_key: str
    owner: str
    mint: str
    locked_tokens: int
    start_ts: int
    genesis_end_ts: int
    end_ts: int
    duration_s: int
    voting_weight: int = Field(description="Descaled voting weight in base units")
    lockup_type: str
    delegated: DelegationResponse | None = None


class LegacyPositionResponse(BaseModel):
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


class PositionsPageResponse(BaseModel):
    timestamp: int
    positions: list[PositionResponse]
    positions_total_len: int


class DelegatedPageResponse(BaseModel):
    timestamp: int
    delegated_positions: list[LegacyPositionResponse]
    positions_total_len: int


class PoolTotalsResponse(BaseModel):
    count: int
    vehnt: int
    hnt: int
    lockup: int
    fall_rate: int


class PoolStatsResponse(BaseModel):
    avg_vehnt: int
    median_vehnt: int
    avg_hnt: int
    median_hnt: int
    avg_lockup: int
    median_lockup: int


class PoolResponse(BaseModel):
    total: PoolTotalsResponse
    stats: PoolStatsResponse | None = None


class MetadataResponse(BaseModel):
    timestamp: int
    network: PoolResponse
    undelegated: PoolResponse
    iot: PoolResponse
    mobile: PoolResponse
    veiot: PoolResponse
    vemobile: PoolResponse
