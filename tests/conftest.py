from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

from src.wasteops.clients.gateway import RouteAction
from src.wasteops.config import Settings
from src.wasteops.data.records import bin_from_record, route_from_record
from src.wasteops.errors import NotFoundError, TransportError
from src.wasteops.models.domain import Bin, Route
from src.wasteops.persistence.filesystem import FileStorage
from src.wasteops.services.container import ServiceContainer, build_container
from src.wasteops.services.stats.engine import route_status_counts


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeGateway:
    """In-memory remote store that accepts whatever route the core proposes."""

    def __init__(self, bins: tuple[Bin, ...] = ()) -> None:
        self.bins: dict[str, Bin] = {bin_.record_id: bin_ for bin_ in bins}
        self.routes: dict[str, Route] = {}
        self.fail_actions: set[str] = set()
        self.fail_bin_updates = False
        self.actions: list[RouteAction] = []
        self.bin_updates: list[tuple[str, dict[str, Any]]] = []
        self._counter = 0

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def fetch_bins(self, status: Optional[str] = None, category: Optional[str] = None) -> list[Bin]:
        bins = list(self.bins.values())
        if status:
            bins = [bin_ for bin_ in bins if bin_.status == status]
        if category:
            bins = [bin_ for bin_ in bins if bin_.category == category]
        return bins

    def create_bin(self, payload: dict[str, Any]) -> Bin:
        record_id = self._next_id("rec")
        record = {"_id": record_id, "binId": f"NEW-{self._counter:03d}", **payload}
        bin_ = bin_from_record(record)
        self.bins[record_id] = bin_
        return bin_

    def update_bin(self, bin_: Bin, changes: dict[str, Any]) -> Bin:
        if self.fail_bin_updates:
            raise TransportError("bins endpoint unreachable")
        if bin_.record_id not in self.bins:
            raise NotFoundError(f"Bin {bin_.bin_id} not found")
        updated = replace(self.bins[bin_.record_id], **changes)
        self.bins[bin_.record_id] = updated
        self.bin_updates.append((bin_.bin_id, dict(changes)))
        return updated

    def delete_bin(self, bin_: Bin) -> None:
        self.bins.pop(bin_.record_id, None)

    def fetch_routes(self, status: Optional[str] = None) -> list[Route]:
        return [route for route in self.routes.values() if status is None or route.status == status]

    def fetch_my_routes(self, collector_id: str, status: Optional[str] = None) -> list[Route]:
        return [
            route
            for route in self.fetch_routes(status)
            if route.assigned_collector and route.assigned_collector.collector_id == collector_id
        ]

    def create_route(self, payload: dict[str, Any]) -> Route:
        record = {"_id": self._next_id("route"), "status": "scheduled", **payload}
        route = route_from_record(record, self.bins)
        self.routes[route.route_id] = route
        return route

    def apply_route_action(self, action: RouteAction, proposed: Route) -> Route:
        if action.kind in self.fail_actions:
            raise TransportError(f"{action.kind} request timed out")
        if action.route_id not in self.routes:
            raise NotFoundError(f"Route {action.route_id} not found")
        self.actions.append(action)
        self.routes[action.route_id] = proposed
        return proposed

    def fetch_route_stats(self) -> dict[str, int]:
        return route_status_counts(self.routes.values())


def make_bin(
    bin_id: str,
    *,
    category: str = "General Waste",
    capacity: float = 120.0,
    fill_level: float = 90.0,
    weight: float = 100.0,
    status: str = "full",
    location: Optional[str] = None,
) -> Bin:
    return Bin(
        record_id=f"rec-{bin_id}",
        bin_id=bin_id,
        location=location or f"{bin_id} Street",
        zone="Zone A",
        category=category,
        capacity=capacity,
        fill_level=fill_level,
        weight=weight,
        status=status,
    )


def default_bins() -> tuple[Bin, ...]:
    return (
        make_bin("BIN-001", fill_level=90.0, weight=100.0),
        make_bin("BIN-002", category="Recyclable", capacity=100.0, fill_level=80.0, weight=70.0),
        make_bin(
            "BIN-003",
            category="Organic",
            capacity=80.0,
            fill_level=70.0,
            weight=50.0,
            status="active",
            location='Back lane, behind "Market" hall',
        ),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(default_bins())


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    return Settings(
        data_root=tmp_path,
        auto_start_reset_scheduler=False,
        report_export_dir=None,
    )


@pytest.fixture
def container(app_settings: Settings, gateway: FakeGateway, clock: FakeClock, tmp_path: Path) -> ServiceContainer:
    built = build_container(app_settings, gateway=gateway, storage=FileStorage(root=tmp_path), clock=clock)
    built.registry.refresh()
    return built


def full_checklist(container: ServiceContainer, completed_at: datetime):
    item_ids = [item_id for item_id, _ in container.settings.checklist_definitions()]
    return container.build_checklist(item_ids, completed_at)
