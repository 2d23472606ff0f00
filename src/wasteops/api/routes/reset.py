"""Daily reset status and manual triggers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.container import ServiceContainer
from ..dependencies import get_container

router = APIRouter(prefix="/reset", tags=["reset"])


@router.get("", status_code=status.HTTP_200_OK)
def reset_status(container: ServiceContainer = Depends(get_container)) -> dict:
    return container.scheduler.status()


@router.post("/check", status_code=status.HTTP_200_OK)
def run_reset_check(container: ServiceContainer = Depends(get_container)) -> dict:
    """Run one scheduler tick now instead of waiting for the next poll."""
    performed = container.scheduler.check()
    return {"performed": performed, **container.scheduler.status()}


@router.post("/run", status_code=status.HTTP_200_OK)
def run_reset(container: ServiceContainer = Depends(get_container)) -> dict:
    """Reset every bin regardless of the armed date."""
    updated = container.scheduler.reset_all()
    return {"updated": len(updated), **container.scheduler.status()}
