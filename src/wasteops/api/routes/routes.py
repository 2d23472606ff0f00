"""Route lifecycle endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...data.records import route_to_record
from ...models.domain import Collector
from ...schemas.routes import (
    CollectBinRequest,
    CollectorModel,
    RouteCreateRequest,
    RouteProgressModel,
    SkipBinRequest,
    StartRouteRequest,
)
from ...services.container import ServiceContainer
from ...services.stats import engine
from ..dependencies import get_container

router = APIRouter(prefix="/routes", tags=["routes"])


def _collector(model: CollectorModel) -> Collector:
    return Collector(collector_id=model.collector_id, first_name=model.first_name, last_name=model.last_name)


@router.get("", status_code=status.HTTP_200_OK)
def list_routes(
    status_filter: Optional[str] = Query(default=None, alias="status", description="Filter by route status"),
    collector_id: Optional[str] = Query(default=None, alias="collectorId"),
    container: ServiceContainer = Depends(get_container),
) -> list[dict]:
    routes = container.lifecycle.list_routes(status=status_filter, collector_id=collector_id)
    return [route_to_record(route) for route in routes]


@router.post("/refresh", status_code=status.HTTP_200_OK)
def refresh_routes(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    container: ServiceContainer = Depends(get_container),
) -> list[dict]:
    return [route_to_record(route) for route in container.lifecycle.refresh_routes(status=status_filter)]


@router.get("/my-routes", status_code=status.HTTP_200_OK)
def my_routes(
    collector_id: str = Query(..., alias="collectorId"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    container: ServiceContainer = Depends(get_container),
) -> list[dict]:
    """Routes assigned to one collector, fetched fresh from the remote store."""
    routes = container.lifecycle.refresh_my_routes(collector_id, status=status_filter)
    return [route_to_record(route) for route in routes]


@router.get("/stats", status_code=status.HTTP_200_OK)
def route_stats(
    source: str = Query(default="remote", pattern="^(remote|local)$"),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """Route totals from the remote aggregate, or from the local snapshot."""
    if source == "local":
        return engine.route_status_counts(container.lifecycle.list_routes())
    return container.lifecycle.fetch_route_stats()


@router.get("/checklist", status_code=status.HTTP_200_OK)
def checklist_template(container: ServiceContainer = Depends(get_container)) -> list[dict]:
    return container.checklist_template()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_route(payload: RouteCreateRequest, container: ServiceContainer = Depends(get_container)) -> dict:
    route = container.lifecycle.create_route(
        name=payload.route_name,
        scheduled_date=payload.scheduled_date,
        scheduled_time=payload.scheduled_time,
        bin_ids=payload.bin_ids,
        collector=_collector(payload.assigned_to) if payload.assigned_to else None,
        notes=payload.notes,
    )
    return route_to_record(route)


@router.get("/{route_id}", status_code=status.HTTP_200_OK)
def get_route(route_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return route_to_record(container.lifecycle.get_route(route_id))


@router.get("/{route_id}/progress", response_model=RouteProgressModel, status_code=status.HTTP_200_OK)
def route_progress(route_id: str, container: ServiceContainer = Depends(get_container)) -> RouteProgressModel:
    route = container.lifecycle.get_route(route_id)
    counts = engine.route_bin_counts(route)
    return RouteProgressModel(
        route_id=route.route_id,
        status=route.status,
        progress=engine.route_progress(route),
        **counts,
    )


@router.put("/{route_id}/start", status_code=status.HTTP_200_OK)
def start_route(
    route_id: str,
    payload: StartRouteRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    checklist = container.build_checklist(payload.checked_items, payload.completed_at)
    return route_to_record(container.lifecycle.start_route(route_id, checklist))


@router.put("/{route_id}/bins/{bin_id}/collect", status_code=status.HTTP_200_OK)
def collect_bin(
    route_id: str,
    bin_id: str,
    payload: CollectBinRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return route_to_record(container.lifecycle.collect_bin(route_id, bin_id, payload.actual_weight))


@router.put("/{route_id}/bins/{bin_id}/skip", status_code=status.HTTP_200_OK)
def skip_bin(
    route_id: str,
    bin_id: str,
    payload: SkipBinRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return route_to_record(container.lifecycle.skip_bin(route_id, bin_id, payload.reason))


@router.put("/{route_id}/complete", status_code=status.HTTP_200_OK)
def complete_route(route_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return route_to_record(container.lifecycle.complete_route(route_id))


@router.put("/{route_id}/cancel", status_code=status.HTTP_200_OK)
def cancel_route(route_id: str, container: ServiceContainer = Depends(get_container)) -> dict:
    return route_to_record(container.lifecycle.cancel_route(route_id))


@router.put("/{route_id}/assign", status_code=status.HTTP_200_OK)
def assign_collector(
    route_id: str,
    payload: CollectorModel,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return route_to_record(container.lifecycle.assign_collector(route_id, _collector(payload)))
