from datetime import date, datetime, timezone

import pytest

from conftest import make_bin
from src.wasteops.errors import ConflictError, NotFoundError
from src.wasteops.models.domain import Route, RouteBinStop
from src.wasteops.services.routes import tracker


def _route() -> Route:
    stops = [
        RouteBinStop(bin=make_bin("BIN-001"), order=1),
        RouteBinStop(bin=make_bin("BIN-002", category="Recyclable"), order=2),
        RouteBinStop(bin=make_bin("BIN-003", fill_level=40.0), order=3),
    ]
    return Route(
        route_id="route-1",
        name="North Loop",
        scheduled_date=date(2026, 10, 18),
        scheduled_time="07:30",
        stops=stops,
        status="in-progress",
    )


def test_mark_collected_returns_new_route() -> None:
    route = _route()
    collected_at = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

    updated = tracker.mark_collected(route, "BIN-002", 30.0, collected_at, fill_level=75.0)

    assert [stop.status for stop in route.stops] == ["pending", "pending", "pending"]
    stop = tracker.find_stop(updated, "BIN-002")
    assert stop.status == "collected"
    assert stop.actual_weight == 30.0
    assert stop.fill_level_at_collection == 75.0
    assert stop.collected_at == collected_at
    assert updated.stops[0] is route.stops[0]


def test_fill_level_defaults_to_stop_bin() -> None:
    updated = tracker.mark_skipped(_route(), "BIN-003", "Gate locked")

    stop = tracker.find_stop(updated, "BIN-003")
    assert stop.fill_level_at_collection == 40.0
    assert stop.notes == "Gate locked"
    assert stop.actual_weight is None


def test_classification_helpers_and_totals() -> None:
    now = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
    route = tracker.mark_collected(_route(), "BIN-001", 20.0, now)
    route = tracker.mark_collected(route, "BIN-002", 12.5, now)

    assert [stop.bin.bin_id for stop in tracker.collected_stops(route)] == ["BIN-001", "BIN-002"]
    assert [stop.bin.bin_id for stop in tracker.pending_stops(route)] == ["BIN-003"]
    assert tracker.skipped_stops(route) == []
    assert not tracker.all_processed(route)
    assert tracker.route_totals(route) == (32.5, 12.5)

    route = tracker.mark_skipped(route, "BIN-003", "Blocked")
    assert tracker.all_processed(route)


def test_terminal_stops_cannot_change() -> None:
    now = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)
    route = tracker.mark_skipped(_route(), "BIN-001", "Blocked")

    with pytest.raises(ConflictError, match="already skipped"):
        tracker.mark_collected(route, "BIN-001", 10.0, now)
    with pytest.raises(ConflictError):
        tracker.mark_skipped(route, "BIN-001", "Again")


def test_unknown_stop() -> None:
    with pytest.raises(NotFoundError):
        tracker.find_stop(_route(), "BIN-404")
