"""Collector "today" view built from the current bin snapshot."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...data.records import bin_to_record
from ...models.domain import Bin
from ...services.container import ServiceContainer
from ...services.stats import engine
from ..dependencies import get_container

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _stop_view(bin_: Bin, classification: str) -> dict:
    view = bin_to_record(bin_)
    view["classification"] = classification
    view["priority"] = engine.bin_priority(bin_)
    return view


@router.get("", status_code=status.HTTP_200_OK)
def get_dashboard(container: ServiceContainer = Depends(get_container)) -> dict:
    bins = container.registry.list_bins()
    classes = engine.completion_classes(bins)
    return {
        "statistics": engine.dashboard_statistics(bins, minutes_per_bin=container.settings.minutes_per_bin),
        "pendingStops": [_stop_view(bin_, "pending") for bin_ in engine.sort_by_priority(classes["pending"])],
        "completedStops": [_stop_view(bin_, "completed") for bin_ in classes["completed"]],
        "issueStops": [_stop_view(bin_, "issue") for bin_ in classes["issue"]],
        "impact": engine.impact_metrics(bins),
        "collectionsByCategory": engine.collections_by_category(bins),
    }
