"""Domain models for bins, routes and their collection stops."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Literal, Optional

WasteCategory = Literal["General Waste", "Recyclable", "Organic", "Hazardous"]
BinStatus = Literal["active", "full", "maintenance", "inactive"]
RouteStatus = Literal["scheduled", "in-progress", "completed", "cancelled"]
StopStatus = Literal["pending", "collected", "skipped"]

WASTE_CATEGORIES: tuple[str, ...] = ("General Waste", "Recyclable", "Organic", "Hazardous")
BIN_STATUSES: tuple[str, ...] = ("active", "full", "maintenance", "inactive")
ROUTE_STATUSES: tuple[str, ...] = ("scheduled", "in-progress", "completed", "cancelled")
STOP_STATUSES: tuple[str, ...] = ("pending", "collected", "skipped")


@dataclass(slots=True)
class Bin:
    """A physical collection point as last reported by the remote store."""

    record_id: str
    bin_id: str
    location: str
    zone: str
    category: str
    capacity: float
    fill_level: float = 0.0
    weight: float = 0.0
    status: str = "active"
    last_collection: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(slots=True)
class Collector:
    collector_id: str
    first_name: str = ""
    last_name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(slots=True)
class ChecklistItem:
    item_id: str
    label: str
    checked: bool = False


@dataclass(slots=True)
class PreRouteChecklist:
    """Readiness confirmations gating the start of a route."""

    items: List[ChecklistItem] = field(default_factory=list)
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.items) and self.completed_at is not None and all(item.checked for item in self.items)


@dataclass(slots=True)
class RouteBinStop:
    """One bin's participation in one route."""

    bin: Bin
    order: int
    status: str = "pending"
    expected_weight: float = 0.0
    actual_weight: Optional[float] = None
    fill_level_at_collection: Optional[float] = None
    collected_at: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(slots=True)
class Route:
    """A scheduled collection assignment and its ordered bin stops."""

    route_id: str
    name: str
    scheduled_date: date
    scheduled_time: str
    stops: List[RouteBinStop] = field(default_factory=list)
    status: str = "scheduled"
    assigned_collector: Optional[Collector] = None
    checklist: Optional[PreRouteChecklist] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    waste_collected: float = 0.0
    recyclable_waste: float = 0.0
    route_duration: int = 0
    notes: Optional[str] = None
