"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import bins, dashboard, health, reports, reset, routes, sync
from .config import settings
from .errors import CollectionError, ConflictError, ExportError, NotFoundError, TransportError, ValidationError
from .services.container import ServiceContainer, build_container

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    ExportError: 500,
    TransportError: 503,
}


def _status_for(exc: CollectionError) -> int:
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def collection_error_handler(request: Request, exc: CollectionError) -> JSONResponse:
    body: dict[str, Any] = {"error": exc.kind, "detail": str(exc), "retryable": exc.retryable}
    if isinstance(exc, ExportError) and exc.content is not None:
        body["content"] = exc.content
    if isinstance(exc, TransportError):
        logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=_status_for(exc), content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: Optional[ServiceContainer] = getattr(app.state, "container", None)
    if container is None:
        container = build_container(settings)
        container.load_snapshot()
        app.state.container = container

    reset_task: asyncio.Task[Any] | None = None
    if container.settings.auto_start_reset_scheduler:
        reset_task = asyncio.create_task(container.scheduler.run_forever())
    app.state.reset_task = reset_task

    yield

    container.scheduler.stop()
    if reset_task:
        reset_task.cancel()
        with suppress(asyncio.CancelledError):
            await reset_task


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        root_path="",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_exception_handler(CollectionError, collection_error_handler)

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(bins.router, prefix=settings.api_prefix)
    app.include_router(dashboard.router, prefix=settings.api_prefix)
    app.include_router(routes.router, prefix=settings.api_prefix)
    app.include_router(reports.router, prefix=settings.api_prefix)
    app.include_router(sync.router, prefix=settings.api_prefix)
    app.include_router(reset.router, prefix=settings.api_prefix)
    return app


app = create_app()
