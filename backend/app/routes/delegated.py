"""Delegated stake endpoints."""

from fastapi import APIRouter, Depends, Query, Response

from app.dependencies import get_query_service
from app.routes.positions import csv_response
from app.schemas.positions import DelegatedPageResponse, MetadataResponse
from vestake.enums import ExportKind
from vestake.services._types import DelegatedPageDict, MetadataDict
from vestake.services.query import QueryService

router: APIRouter = APIRouter(prefix="/v1/delegated_stakes", tags=["delegated"])


@router.get("", response_model=DelegatedPageResponse)
def list_delegated_stakes(
    start: int = Query(0),
    limit: int | None = Query(None),
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> DelegatedPageDict:
    return svc.delegated_positions(start, limit, timestamp)


@router.get("/info", response_model=MetadataResponse)
def delegated_stakes_info(
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> MetadataDict:
    return svc.metadata(timestamp)


@router.get("/csv")
def delegated_stakes_csv(svc: QueryService = Depends(get_query_service)) -> Response:
    return csv_response(svc.export_csv(ExportKind.DELEGATED))
