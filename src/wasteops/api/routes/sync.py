"""Offline queue inspection and replay."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.container import ServiceContainer
from ..dependencies import get_container

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("", status_code=status.HTTP_200_OK)
def list_queued_mutations(container: ServiceContainer = Depends(get_container)) -> list[dict]:
    return [entry.to_record() for entry in container.queue.entries()]


@router.post("", status_code=status.HTTP_200_OK)
def replay_queued_mutations(container: ServiceContainer = Depends(get_container)) -> dict:
    result = container.lifecycle.sync_offline_queue()
    return {
        "applied": [entry.to_record() for entry in result.applied],
        "rejected": [{"entry": entry.to_record(), "reason": reason} for entry, reason in result.rejected],
        "remaining": result.remaining,
        "error": result.error,
    }
