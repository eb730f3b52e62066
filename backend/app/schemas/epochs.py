"""Epoch info response schemas."""

from pydantic import BaseModel


class EpochSummaryResponse(BaseModel):
    epoch: int
    iot_dc_burned: int
    mobile_dc_burned: int
    iot_vehnt_at_epoch_start: int
    mobile_vehnt_at_epoch_start: int
    iot_delegation_rewards_issued: int
    mobile_delegation_rewards_issued: int
    iot_utility_score: int | None = None
    mobile_utility_score: int | None = None
    epoch_start_at_ts: int | None = None
    rewards_issued_at_ts: int | None = None
    rewards_issued_at: str | None = None
    initialized: bool
