"""Route lifecycle API schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class CollectorModel(BaseModel):
    collector_id: str = Field(..., alias="collectorId")
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")

    class Config:
        populate_by_name = True


class RouteCreateRequest(BaseModel):
    route_name: str = Field(..., alias="routeName")
    scheduled_date: date = Field(..., alias="scheduledDate")
    scheduled_time: str = Field(..., alias="scheduledTime")
    bin_ids: List[str] = Field(..., alias="binIds")
    assigned_to: Optional[CollectorModel] = Field(None, alias="assignedTo")
    notes: Optional[str] = None

    class Config:
        populate_by_name = True


class StartRouteRequest(BaseModel):
    """Checklist ids the collector ticked off and when the checklist was finished."""

    checked_items: List[str] = Field(default_factory=list, alias="checkedItems")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")

    class Config:
        populate_by_name = True


class CollectBinRequest(BaseModel):
    # Left untyped so the lifecycle manager applies its own weight rules.
    actual_weight: Any = Field(None, alias="actualWeight")

    class Config:
        populate_by_name = True


class SkipBinRequest(BaseModel):
    reason: Optional[str] = None


class RouteProgressModel(BaseModel):
    route_id: str = Field(..., alias="routeId")
    status: str
    progress: int
    total: int
    collected: int
    skipped: int
    pending: int

    class Config:
        populate_by_name = True
