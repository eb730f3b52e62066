"""FastAPI dependencies."""

from fastapi import Request

from vestake.services.query import QueryService


def get_query_service(request: Request) -> QueryService:
    """QueryService installed on app.state at startup."""
    return request.app.state.query_service
