"""Bin registry endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...data.records import bin_to_record
from ...schemas.bins import BinCreateRequest, BinUpdateRequest
from ...services.container import ServiceContainer
from ...services.stats import bin_statistics
from ..dependencies import get_container

router = APIRouter(prefix="/bins", tags=["bins"])


@router.get("", status_code=status.HTTP_200_OK)
def list_bins(
    status_filter: Optional[str] = Query(default=None, alias="status", description="Filter by operational status"),
    category: Optional[str] = Query(default=None, alias="binType", description="Filter by waste category"),
    container: ServiceContainer = Depends(get_container),
) -> list[dict]:
    bins = container.registry.list_bins(status=status_filter, category=category)
    return [bin_to_record(bin_) for bin_ in bins]


@router.post("/refresh", status_code=status.HTTP_200_OK)
def refresh_bins(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    category: Optional[str] = Query(default=None, alias="binType"),
    container: ServiceContainer = Depends(get_container),
) -> list[dict]:
    """Reload bins from the remote store into the snapshot."""
    bins = container.registry.refresh(status=status_filter, category=category)
    return [bin_to_record(bin_) for bin_ in bins]


@router.get("/statistics", status_code=status.HTTP_200_OK)
def get_bin_statistics(container: ServiceContainer = Depends(get_container)) -> dict:
    return bin_statistics(container.registry.list_bins())


@router.get("/{bin_id}", status_code=status.HTTP_200_OK)
def get_bin(bin_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return bin_to_record(container.registry.get_bin(bin_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_bin(payload: BinCreateRequest, container: ServiceContainer = Depends(get_container)) -> dict:
    created = container.registry.create_bin(
        bin_id=payload.bin_id,
        location=payload.location,
        zone=payload.zone,
        category=payload.category,
        capacity=payload.capacity,
        fill_level=payload.fill_level,
        weight=payload.weight,
        status=payload.status,
        notes=payload.notes,
    )
    return bin_to_record(created)


@router.put("/{bin_id}", status_code=status.HTTP_200_OK)
def update_bin(
    bin_id: str,
    payload: BinUpdateRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return bin_to_record(container.registry.update_bin(bin_id, payload.changes()))


@router.delete("/{bin_id}", status_code=status.HTTP_200_OK)
def delete_bin(bin_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    container.registry.delete_bin(bin_id)
    return {"success": True, "message": f"Bin {bin_id} deleted"}
