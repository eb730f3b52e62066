"""Common/shared schemas."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str
    type: str | None = None


class HealthResponse(BaseModel):
    status: str


class RefreshStatusResponse(BaseModel):
    state: str
    cycles: int
    consecutive_failures: int
    last_success_ts: int | None = None
    last_error: str | None = None


class StatusResponse(BaseModel):
    initialized: bool
    latest_timestamp: int | None = None
    history_timestamps: list[int]
    refresh: RefreshStatusResponse | None = None
