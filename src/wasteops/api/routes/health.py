"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.container import ServiceContainer
from ..dependencies import get_container

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/details", status_code=status.HTTP_200_OK)
def health_details(container: ServiceContainer = Depends(get_container)) -> dict:
    """Snapshot sizes, queued offline writes and the reset scheduler state."""
    return {
        "status": "ok",
        "backend": container.settings.backend,
        "bins": len(container.store.list_bins()),
        "routes": len(container.store.list_routes()),
        "queuedMutations": len(container.queue),
        "dailyReset": container.scheduler.status(),
    }
