from datetime import date, datetime

import pytest

from conftest import make_bin
from src.wasteops.models.domain import BIN_STATUSES, Collector, Route, RouteBinStop
from src.wasteops.services.stats import engine


def _route(statuses: list[str]) -> Route:
    stops = [
        RouteBinStop(bin=make_bin(f"BIN-{index:03d}"), order=index, status=status)
        for index, status in enumerate(statuses, start=1)
    ]
    return Route(
        route_id="route-1",
        name="Loop",
        scheduled_date=date(2026, 10, 18),
        scheduled_time="08:00",
        stops=stops,
    )


def test_route_progress_for_empty_route_is_zero() -> None:
    assert engine.route_progress(_route([])) == 0


def test_route_progress_rounds_half_up() -> None:
    route = _route(["collected"] + ["pending"] * 7)

    assert engine.route_progress(route) == 13
    assert engine.route_progress(_route(["collected", "skipped", "pending"])) == 33


@pytest.mark.parametrize("status", BIN_STATUSES)
@pytest.mark.parametrize("fill_level", [0.0, 49.9, 50.0, 84.0, 100.0])
def test_classification_is_a_partition(status: str, fill_level: float) -> None:
    bin_ = make_bin("BIN-001", status=status, fill_level=fill_level)

    classification = engine.classify_bin(bin_)
    classes = engine.completion_classes([bin_])

    assert classification in ("completed", "pending", "issue")
    assert sum(len(members) for members in classes.values()) == 1
    assert classes[classification] == [bin_]
    if status in ("maintenance", "inactive"):
        assert classification == "issue"
    elif status == "full" or fill_level >= 50:
        assert classification == "pending"
    else:
        assert classification == "completed"


def test_efficiency_and_dashboard_statistics() -> None:
    bins = [
        make_bin("BIN-001", status="active", fill_level=10.0),
        make_bin("BIN-002", status="active", fill_level=20.0),
        make_bin("BIN-003", status="full", fill_level=90.0),
        make_bin("BIN-004", status="maintenance", fill_level=30.0),
    ]

    stats = engine.dashboard_statistics(bins, now=datetime(2026, 10, 18, 14, 0))

    assert engine.efficiency(bins) == 50
    assert stats == {
        "completed": 2,
        "remaining": 1,
        "issues": 1,
        "total": 4,
        "percentage": 50,
        "efficiency": 50,
        "eta": "2:15 PM",
    }
    assert engine.efficiency([]) == 0


def test_eta_formatting() -> None:
    assert engine.estimate_eta(3, now=datetime(2026, 10, 18, 14, 0)) == "2:45 PM"
    assert engine.estimate_eta(0, now=datetime(2026, 10, 18, 0, 5)) == "12:05 AM"
    assert engine.estimate_eta(4, now=datetime(2026, 10, 18, 11, 30)) == "12:30 PM"
    assert engine.estimate_eta(2, now=datetime(2026, 10, 18, 9, 0), minutes_per_bin=10) == "9:20 AM"


def test_priority_and_sorting() -> None:
    low = make_bin("BIN-001", fill_level=55.0)
    high = make_bin("BIN-002", fill_level=85.0)
    normal = make_bin("BIN-003", fill_level=60.0)
    also_high = make_bin("BIN-004", fill_level=99.0)

    assert [engine.bin_priority(b) for b in (low, high, normal)] == ["low", "high", "normal"]
    assert engine.sort_by_priority([low, high, normal, also_high]) == [high, also_high, normal, low]


def test_impact_metrics_use_completed_bins() -> None:
    bins = [
        make_bin("BIN-001", status="active", fill_level=0.0, capacity=100.0),
        make_bin("BIN-002", status="active", fill_level=10.0, capacity=20.0, category="Recyclable"),
        make_bin("BIN-003", status="full", fill_level=90.0, capacity=500.0),
    ]

    assert engine.impact_metrics(bins) == {"recycled": 120.0, "co2Saved": 60, "treesSaved": 1000}
    assert engine.impact_metrics([]) == {"recycled": 0, "co2Saved": 0, "treesSaved": 0}


def test_collections_by_category_lists_every_category() -> None:
    bins = [
        make_bin("BIN-001", status="active", fill_level=0.0, capacity=100.0),
        make_bin("BIN-002", status="active", fill_level=0.0, capacity=40.0, category="Recyclable"),
        make_bin("BIN-003", status="active", fill_level=0.0, capacity=60.0, category="Recyclable"),
        make_bin("BIN-004", status="full", fill_level=90.0, capacity=80.0, category="Organic"),
    ]

    assert engine.collections_by_category(bins) == [
        {"category": "General Waste", "count": 1, "weight": 100.0},
        {"category": "Recyclable", "count": 2, "weight": 100.0},
        {"category": "Organic", "count": 0, "weight": 0.0},
        {"category": "Hazardous", "count": 0, "weight": 0.0},
    ]


def test_bin_statistics_counts_status_and_category() -> None:
    bins = [
        make_bin("BIN-001", status="active"),
        make_bin("BIN-002", status="full", category="Hazardous"),
        make_bin("BIN-003", status="full"),
    ]

    stats = engine.bin_statistics(bins)

    assert stats["total"] == 3
    assert stats["byStatus"] == {"active": 1, "full": 2, "maintenance": 0, "inactive": 0}
    assert stats["byCategory"] == {"General Waste": 2, "Recyclable": 0, "Organic": 0, "Hazardous": 1}


def test_route_status_counts() -> None:
    scheduled = _route([])
    assigned = _route([])
    assigned.route_id = "route-2"
    assigned.assigned_collector = Collector("col-1")
    completed = _route([])
    completed.status = "completed"

    assert engine.route_status_counts([scheduled, assigned, completed]) == {
        "totalRoutes": 3,
        "scheduledRoutes": 2,
        "inProgressRoutes": 0,
        "completedRoutes": 1,
        "cancelledRoutes": 0,
        "unassignedRoutes": 1,
    }


@pytest.mark.parametrize("value,expected", [(2.5, 3), (2.4999, 2), (0.5, 1), (10.5, 11), (0, 0)])
def test_round_half_up(value: float, expected: int) -> None:
    assert engine.round_half_up(value) == expected
