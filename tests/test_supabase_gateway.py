from dataclasses import dataclass
from datetime import date
from typing import Any

import pytest

from conftest import make_bin
from src.wasteops.clients.gateway import RouteAction
from src.wasteops.errors import NotFoundError, TransportError
from src.wasteops.models.domain import Route
from src.wasteops.persistence.supabase_gateway import SupabaseCollectionGateway


@dataclass
class DummyResponse:
    data: list


class DummyQuery:
    def __init__(self, tables: dict[str, list[dict]], name: str, fail: bool) -> None:
        self.rows = tables.setdefault(name, [])
        self.fail = fail
        self.filters: list = []
        self.operation = ("select", None)

    def select(self, *_args: Any) -> "DummyQuery":
        self.operation = ("select", None)
        return self

    def insert(self, row: dict) -> "DummyQuery":
        self.operation = ("insert", row)
        return self

    def update(self, row: dict) -> "DummyQuery":
        self.operation = ("update", row)
        return self

    def delete(self) -> "DummyQuery":
        self.operation = ("delete", None)
        return self

    def eq(self, column: str, value: Any) -> "DummyQuery":
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: list) -> "DummyQuery":
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def _matches(self, row: dict) -> bool:
        return all(check(row) for check in self.filters)

    def execute(self) -> DummyResponse:
        if self.fail:
            raise ConnectionError("supabase unreachable")
        kind, row = self.operation
        if kind == "insert":
            self.rows.append(row)
            return DummyResponse([row])
        matched = [existing for existing in self.rows if self._matches(existing)]
        if kind == "update":
            for existing in matched:
                existing.update(row)
        elif kind == "delete":
            self.rows[:] = [existing for existing in self.rows if existing not in matched]
        return DummyResponse(matched)


class DummySupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict]] = {}
        self.fail = False

    def table(self, name: str) -> DummyQuery:
        return DummyQuery(self.tables, name, self.fail)


@pytest.fixture
def client() -> DummySupabase:
    return DummySupabase()


@pytest.fixture
def supabase_gateway(client: DummySupabase) -> SupabaseCollectionGateway:
    gateway = SupabaseCollectionGateway(client=client)
    for bin_ in (make_bin("BIN-001"), make_bin("BIN-002", category="Recyclable", status="active")):
        client.tables.setdefault("bins", []).append(gateway._bin_row(bin_))
    return gateway


def test_bins_are_filtered_and_updated(supabase_gateway, client) -> None:
    assert [b.bin_id for b in supabase_gateway.fetch_bins(category="Recyclable")] == ["BIN-002"]

    updated = supabase_gateway.update_bin(make_bin("BIN-001"), {"fill_level": 0.0, "status": "active"})

    assert updated.fill_level == 0.0
    assert {b.bin_id for b in supabase_gateway.fetch_bins(status="active")} == {"BIN-001", "BIN-002"}


def test_update_unknown_bin(supabase_gateway) -> None:
    with pytest.raises(NotFoundError):
        supabase_gateway.update_bin(make_bin("BIN-404"), {"status": "full"})


def test_route_documents_follow_proposed_state(supabase_gateway) -> None:
    route = supabase_gateway.create_route(
        {
            "routeName": "Harbour",
            "scheduledDate": "2026-10-18",
            "scheduledTime": "06:30",
            "bins": [{"bin": "rec-BIN-002", "order": 1, "expectedWeight": 100.0}],
            "assignedTo": "col-1",
        }
    )
    assert route.status == "scheduled"
    assert route.stops[0].bin.bin_id == "BIN-002"

    route.status = "cancelled"
    stored = supabase_gateway.apply_route_action(RouteAction(kind="cancel", route_id=route.route_id), route)

    assert stored.status == "cancelled"
    assert [r.route_id for r in supabase_gateway.fetch_my_routes("col-1")] == [route.route_id]
    assert supabase_gateway.fetch_route_stats()["cancelledRoutes"] == 1


def test_created_route_keeps_collector_name(supabase_gateway, client) -> None:
    route = supabase_gateway.create_route(
        {
            "routeName": "Harbour",
            "scheduledDate": "2026-10-18",
            "scheduledTime": "06:30",
            "bins": [{"bin": "rec-BIN-001", "order": 1, "expectedWeight": 100.0}],
            "assignedTo": {"_id": "col-1", "firstName": "Ana", "lastName": "Silva"},
        }
    )

    assert route.assigned_collector.full_name == "Ana Silva"
    assert client.tables["routes"][0]["assigned_to"] == "col-1"
    assert supabase_gateway.fetch_routes()[0].assigned_collector.full_name == "Ana Silva"


def test_missing_route_action(supabase_gateway) -> None:
    proposed = Route(route_id="ghost", name="Ghost", scheduled_date=date(2026, 10, 18), scheduled_time="06:00")
    with pytest.raises(NotFoundError):
        supabase_gateway.apply_route_action(RouteAction(kind="start", route_id="ghost"), proposed)


def test_client_failures_become_transport_errors(supabase_gateway, client) -> None:
    client.fail = True

    with pytest.raises(TransportError, match="unreachable"):
        supabase_gateway.fetch_routes()
