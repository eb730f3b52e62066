"""Owner account response schemas."""

from pydantic import BaseModel

from app.schemas.positions import PositionResponse


class VehntBalanceResponse(BaseModel):
    total: int
    iot_delegated: int
    mobile_delegated: int
    undelegated: int


class LockedBalancesResponse(BaseModel):
    vehnt: VehntBalanceResponse
    locked_hnt: int
    pending_iot: int
    pending_mobile: int
    veiot: int
    locked_iot: int
    vemobile: int
    locked_mobile: int


class AccountPositionsResponse(BaseModel):
    vehnt: list[PositionResponse]
    veiot: list[PositionResponse]
    vemobile: list[PositionResponse]


class AccountResponse(BaseModel):
    owner: str
    timestamp: int
    balances: LockedBalancesResponse
    positions: AccountPositionsResponse


class PositionKeysResponse(BaseModel):
    vehnt: list[str]
    veiot: list[str]
    vemobile: list[str]


class TopOwnerResponse(BaseModel):
    pubkey: str
    positions: PositionKeysResponse
    balances: LockedBalancesResponse


class TopOwnersResponse(BaseModel):
    timestamp: int
    top: list[TopOwnerResponse]
