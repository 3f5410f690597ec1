"""FastAPI application exposing the sync service."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Settings
from ..services.context import create_context
from ..sync.errors import AuthError, SyncError, TransientError, ValidationError
from .routers import sync

logger = logging.getLogger("liftlog.web")


def create_app(
    db_path: Path | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    run_scheduler: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Database file (defaults to the configured location)
        settings: Application settings
        http_client: Optional httpx client for the gist API (for testing)
        run_scheduler: Whether to drain the outbox in the background
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the database and run the scheduler while the app is up."""
        context = await create_context(db_path, settings, http_client)
        app.state.context = context
        if run_scheduler:
            context.scheduler.start()
            logger.info("Sync scheduler started (every %.0fs)", context.scheduler.interval)
        yield
        if run_scheduler:
            await context.scheduler.stop()
            logger.info("Sync scheduler stopped")

    app = FastAPI(
        title="liftlog",
        description="Offline-first workout log sync service",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(SyncError)
    async def sync_error_handler(request: Request, exc: SyncError):
        if isinstance(exc, AuthError):
            status_code = 401
        elif isinstance(exc, TransientError):
            status_code = 503
        elif isinstance(exc, ValidationError):
            status_code = 422
        else:
            status_code = 500
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    app.include_router(sync.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
