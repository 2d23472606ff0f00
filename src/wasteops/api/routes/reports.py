"""Route completion report endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from ...services.container import ServiceContainer
from ...services.reports import route_to_report
from ..dependencies import get_container

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/{route_id}", response_class=PlainTextResponse, status_code=status.HTTP_200_OK)
def render_report(route_id: str, container: ServiceContainer = Depends(get_container)) -> PlainTextResponse:
    route = container.lifecycle.get_route(route_id)
    return PlainTextResponse(route_to_report(route), media_type="text/csv")


@router.post("/{route_id}/export", status_code=status.HTTP_200_OK)
def export_report(
    route_id: str,
    report_format: str = Query(default="csv", alias="format", pattern="^(csv|txt)$"),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """Write and share the report; without a share target the content comes back inline."""
    route = container.lifecycle.get_route(route_id)
    result = container.exporter.export(route, report_format)
    return {
        "success": result.success,
        "message": result.message,
        "content": result.content,
        "fileName": result.path.name if result.path else None,
        "sharedTo": str(result.shared_to) if result.shared_to else None,
    }


@router.post("/{route_id}/save", status_code=status.HTTP_201_CREATED)
def save_report(route_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    route = container.lifecycle.get_route(route_id)
    path = container.exporter.save_locally(route)
    return {"success": True, "fileName": path.name}


@router.get("/{route_id}/saved", status_code=status.HTTP_200_OK)
def load_saved_report(route_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    report = container.exporter.load_saved_report(route_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No saved report for route {route_id}")
    return report
