"""FastAPI application: entry point."""

import asyncio
import contextlib
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.routes import accounts, delegated, epochs, health, positions
from app.schemas.common import ErrorResponse
from config import Settings, configure_logging, get_settings
from vestake.services.chain_client import ChainClient
from vestake.services.errors import (
    DataNotInitializedError,
    InvalidPageError,
    InvalidPubkeyError,
    PositionNotFoundError,
    QueryError,
    SnapshotNotFoundError,
)
from vestake.services.export import ExportService
from vestake.services.ingestion import IngestionService, SnapshotPipeline
from vestake.services.query import QueryService
from vestake.services.refresh import RefreshScheduler
from vestake.services.snapshot_cache import SnapshotCache

logger: logging.Logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[QueryError], int] = {
    DataNotInitializedError: 503,
    SnapshotNotFoundError: 404,
    PositionNotFoundError: 404,
    InvalidPageError: 400,
    InvalidPubkeyError: 400,
}


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "query_service", None) is not None:
        yield
        return

    settings: Settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("RPC: %s, refresh every %ss", settings.chain.rpc_url, settings.refresh.interval_secs)

    client: ChainClient = ChainClient()
    cache: SnapshotCache = SnapshotCache(settings.refresh.history_window_secs)
    scheduler: RefreshScheduler = RefreshScheduler(SnapshotPipeline(IngestionService(client)), cache)
    app.state.query_service = QueryService(
        cache,
        scheduler=scheduler,
        page_limit=settings.api.page_limit,
        top_owners_limit=settings.api.top_owners,
        export_service=ExportService(settings.export_dir),
    )
    task: asyncio.Task[None] = asyncio.create_task(scheduler.run())
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        await client.aclose()
        logger.info("Refresh task stopped after %d cycles", scheduler.cycles)


def create_app(query_service: QueryService | None = None) -> FastAPI:
    """Build the app. A given *query_service* is used as-is and no refresh task is started."""
    app: FastAPI = FastAPI(
        title="Vote-Escrow Position Indexer",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.query_service = query_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(QueryError)
    async def _on_query_error(request: Request, exc: QueryError) -> JSONResponse:
        status_code: int = _STATUS_BY_ERROR.get(type(exc), 400)
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(detail=str(exc), type=type(exc).__name__).model_dump(),
        )

    @app.exception_handler(Exception)
    async def _on_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled: %s", exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(detail=str(exc), type=type(exc).__name__).model_dump(),
        )

    app.include_router(health.router)
    app.include_router(positions.router)
    app.include_router(delegated.router)
    app.include_router(accounts.router)
    app.include_router(epochs.router)

    return app


app: FastAPI = create_app()


def start() -> None:
    """Entry point for vestake-api."""
    backend_root: Path = Path(__file__).resolve().parent.parent
    os.chdir(backend_root)

    for candidate in (backend_root / ".env", backend_root.parent / ".env"):
        if candidate.exists():
            load_dotenv(candidate, override=False)

    settings: Settings = get_settings()
    reload: bool = os.environ.get("VESTAKE_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "app.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=reload,
    )
