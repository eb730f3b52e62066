"""Epoch endpoints."""

from fastapi import APIRouter, Depends

from app.dependencies import get_query_service
from app.schemas.epochs import EpochSummaryResponse
from vestake.services._types import EpochSummaryDict
from vestake.services.query import QueryService

router: APIRouter = APIRouter(prefix="/v1/epoch", tags=["epochs"])


@router.get("/info", response_model=list[EpochSummaryResponse])
def epoch_info(svc: QueryService = Depends(get_query_service)) -> list[EpochSummaryDict]:
    """Complete epochs followed by the in-progress epoch."""
    return svc.epoch_info()
