"""Owner account endpoints."""

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_query_service
from app.schemas.accounts import AccountResponse, TopOwnersResponse
from vestake.enums import Grouping
from vestake.services._types import AccountDict, TopOwnersDict
from vestake.services.query import QueryService

router: APIRouter = APIRouter(prefix="/v1/accounts", tags=["accounts"])


@router.get("/{grouping}/top", response_model=TopOwnersResponse)
def top_owners(
    grouping: Grouping,
    limit: int | None = Query(None),
    svc: QueryService = Depends(get_query_service),
) -> TopOwnersDict:
    return svc.top_owners(grouping, limit)


@router.get("/{owner}", response_model=AccountResponse)
def get_account(owner: str, svc: QueryService = Depends(get_query_service)) -> AccountDict:
    return svc.account(owner)
