import asyncio
from datetime import datetime
from pathlib import Path

import pytest

from conftest import FakeClock, FakeGateway, make_bin
from src.wasteops.data.bin_registry import BinRegistry
from src.wasteops.data.snapshot import SnapshotStore
from src.wasteops.persistence.filesystem import FileStorage
from src.wasteops.services.scheduling.daily_reset import DailyResetScheduler


@pytest.fixture
def local_clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 23, 58))


@pytest.fixture
def reset_gateway() -> FakeGateway:
    return FakeGateway(
        (
            make_bin("BIN-001", status="active", fill_level=0.0, weight=0.0, capacity=120.0),
            make_bin("BIN-002", status="maintenance", fill_level=30.0, weight=10.0, capacity=100.0),
        )
    )


@pytest.fixture
def registry(reset_gateway: FakeGateway) -> BinRegistry:
    registry = BinRegistry(SnapshotStore(), reset_gateway)
    registry.refresh()
    return registry


def _snapshot(registry: BinRegistry) -> list[tuple]:
    return [(b.bin_id, b.fill_level, b.weight, b.status) for b in registry.list_bins()]


def test_no_reset_on_the_armed_day(registry, local_clock) -> None:
    scheduler = DailyResetScheduler(registry, clock=local_clock)

    assert scheduler.check() is False
    assert scheduler.state == "armed"
    assert registry.get_bin("BIN-001").status == "active"


def test_day_boundary_resets_every_bin(registry, local_clock) -> None:
    scheduler = DailyResetScheduler(registry, clock=local_clock)
    local_clock.advance(minutes=5)

    assert scheduler.check() is True
    assert scheduler.armed_date.isoformat() == "2026-10-19"
    assert _snapshot(registry) == [
        ("BIN-001", 85.0, 102.0, "full"),
        ("BIN-002", 85.0, 85.0, "full"),
    ]
    assert scheduler.check() is False


def test_reset_is_idempotent(registry, local_clock) -> None:
    scheduler = DailyResetScheduler(registry, clock=local_clock)

    scheduler.reset_all()
    once = _snapshot(registry)
    scheduler.reset_all()

    assert _snapshot(registry) == once


def test_failed_reset_keeps_armed_date(registry, reset_gateway, local_clock) -> None:
    scheduler = DailyResetScheduler(registry, clock=local_clock)
    local_clock.advance(days=1)
    reset_gateway.fail_bin_updates = True

    assert scheduler.check() is False
    assert scheduler.armed_date.isoformat() == "2026-10-18"
    assert scheduler.last_error is not None

    reset_gateway.fail_bin_updates = False
    assert scheduler.check() is True
    assert scheduler.armed_date.isoformat() == "2026-10-19"
    assert scheduler.last_error is None


def test_armed_date_survives_restart(registry, local_clock, tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    scheduler = DailyResetScheduler(registry, storage=storage, clock=local_clock)
    local_clock.advance(days=1)
    assert scheduler.check() is True

    restarted = DailyResetScheduler(registry, storage=storage, clock=FakeClock(datetime(2026, 10, 21, 6, 0)))

    assert restarted.armed_date.isoformat() == "2026-10-19"
    assert restarted.check() is True


def test_configured_reset_values(registry, local_clock) -> None:
    scheduler = DailyResetScheduler(registry, clock=local_clock, fill_level=90.0, weight_ratio=0.5)

    scheduler.reset_all()

    assert registry.get_bin("BIN-001").fill_level == 90.0
    assert registry.get_bin("BIN-001").weight == 60.0


def test_run_forever_polls_until_stopped(registry, local_clock) -> None:
    scheduler = DailyResetScheduler(registry, clock=local_clock, poll_interval_seconds=0.01)
    local_clock.advance(days=1)

    async def scenario() -> None:
        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.1)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(scenario())

    assert scheduler.armed_date.isoformat() == "2026-10-19"
    assert scheduler.status()["running"] is False
    assert registry.get_bin("BIN-001").status == "full"
