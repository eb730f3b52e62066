"""Position endpoints: thin routes, logic in services."""

from fastapi import APIRouter, Depends, Query, Response

from app.dependencies import get_query_service
from app.schemas.positions import MetadataResponse, PositionResponse, PositionsPageResponse
from vestake.enums import ExportKind, Grouping
from vestake.services._types import ExportDataDict, MetadataDict, PositionDict, PositionsPageDict
from vestake.services.query import QueryService

router: APIRouter = APIRouter(prefix="/v1/positions", tags=["positions"])


def csv_response(export: ExportDataDict) -> Response:
    return Response(
        content=export["content"],
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export["filename"]}"'},
    )


@router.get("", response_model=PositionsPageResponse)
def list_positions(
    start: int = Query(0),
    limit: int | None = Query(None),
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> PositionsPageDict:
    return svc.positions(Grouping.HNT, start, limit, timestamp)


@router.get("/info", response_model=MetadataResponse)
def positions_info(
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> MetadataDict:
    return svc.metadata(timestamp)


@router.get("/csv")
def positions_csv(svc: QueryService = Depends(get_query_service)) -> Response:
    return csv_response(svc.export_csv(ExportKind.POSITIONS))


@router.get("/vehnt/metadata", response_model=MetadataResponse)
def vehnt_metadata(
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> MetadataDict:
    return svc.metadata(timestamp)


@router.get("/vehnt", response_model=PositionsPageResponse)
def list_vehnt_positions(
    start: int = Query(0),
    limit: int | None = Query(None),
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> PositionsPageDict:
    return svc.positions(Grouping.HNT, start, limit, timestamp)


@router.get("/veiot", response_model=PositionsPageResponse)
def list_veiot_positions(
    start: int = Query(0),
    limit: int | None = Query(None),
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> PositionsPageDict:
    return svc.positions(Grouping.IOT, start, limit, timestamp)


@router.get("/vemobile", response_model=PositionsPageResponse)
def list_vemobile_positions(
    start: int = Query(0),
    limit: int | None = Query(None),
    timestamp: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> PositionsPageDict:
    return svc.positions(Grouping.MOBILE, start, limit, timestamp)


@router.get("/{grouping}/{key}", response_model=PositionResponse)
def get_grouped_position(
    grouping: Grouping,
    key: str,
    svc: QueryService = Depends(get_query_service),
) -> PositionDict:
    return svc.position(grouping, key)


@router.get("/{key}", response_model=PositionResponse)
def get_position(key: str, svc: QueryService = Depends(get_query_service)) -> PositionDict:
    return svc.position(Grouping.HNT, key)
