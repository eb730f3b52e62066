"""Health endpoints."""

from fastapi import APIRouter, Depends

from app.dependencies import get_query_service
from app.schemas.common import HealthResponse, StatusResponse
from vestake.services._types import StatusDict
from vestake.services.query import QueryService

router: APIRouter = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/refresh", response_model=StatusResponse)
def refresh_status(svc: QueryService = Depends(get_query_service)) -> StatusDict:
    return svc.status()
