from datetime import datetime, timezone

import pytest

from conftest import FakeGateway
from src.wasteops.data.bin_registry import BinRegistry
from src.wasteops.data.snapshot import SnapshotStore
from src.wasteops.errors import NotFoundError, TransportError, ValidationError


@pytest.fixture
def registry(gateway: FakeGateway) -> BinRegistry:
    registry = BinRegistry(SnapshotStore(), gateway)
    registry.refresh()
    return registry


def test_refresh_and_filters(registry: BinRegistry) -> None:
    assert [b.bin_id for b in registry.list_bins()] == ["BIN-001", "BIN-002", "BIN-003"]
    assert [b.bin_id for b in registry.list_bins(status="active")] == ["BIN-003"]
    assert [b.bin_id for b in registry.list_bins(category="Recyclable")] == ["BIN-002"]
    assert registry.get_bin("rec-BIN-001").bin_id == "BIN-001"


def test_create_bin(registry: BinRegistry, gateway: FakeGateway) -> None:
    created = registry.create_bin(location="  Main St 4 ", zone="Zone B", category="Hazardous", capacity=60)

    assert created.location == "Main St 4"
    assert created.category == "Hazardous"
    assert created.record_id in gateway.bins
    assert registry.get_bin(created.bin_id) == created


@pytest.mark.parametrize(
    "kwargs",
    [
        {"fill_level": 120},
        {"weight": -1},
        {"category": "Glass"},
        {"status": "lost"},
        {"capacity": float("nan")},
        {"location": "  "},
    ],
)
def test_create_bin_validation(registry: BinRegistry, kwargs: dict) -> None:
    params = {"location": "Main St", "zone": "Zone B", "category": "Organic", "capacity": 60, **kwargs}

    with pytest.raises(ValidationError):
        registry.create_bin(**params)


def test_create_bin_with_existing_id_is_rejected(registry: BinRegistry) -> None:
    with pytest.raises(ValidationError, match="already exists"):
        registry.create_bin(bin_id="BIN-001", location="Dup", zone="Zone A", category="Organic", capacity=60)


def test_update_and_delete(registry: BinRegistry, gateway: FakeGateway) -> None:
    updated = registry.update_bin("BIN-002", {"fill_level": 40.0, "status": "active"})

    assert updated.fill_level == 40.0
    assert registry.get_bin("BIN-002").status == "active"
    with pytest.raises(ValidationError):
        registry.update_bin("BIN-002", {"record_id": "x"})

    registry.delete_bin("BIN-002")
    with pytest.raises(NotFoundError):
        registry.get_bin("BIN-002")
    assert "rec-BIN-002" not in gateway.bins


def test_failed_update_leaves_snapshot(registry: BinRegistry, gateway: FakeGateway) -> None:
    gateway.fail_bin_updates = True

    with pytest.raises(TransportError):
        registry.mark_collected("BIN-001", datetime(2026, 10, 18, tzinfo=timezone.utc))

    assert registry.get_bin("BIN-001").fill_level == 90.0


def test_bulk_update_reports_failures_after_full_pass(registry: BinRegistry, gateway: FakeGateway) -> None:
    del gateway.bins["rec-BIN-002"]

    with pytest.raises(TransportError, match="BIN-002"):
        registry.bulk_update(lambda bin_: {"notes": "checked"})

    assert registry.get_bin("BIN-001").notes == "checked"
    assert registry.get_bin("BIN-003").notes == "checked"
