"""Per-stop collection state inside an active route."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from ...errors import ConflictError, NotFoundError
from ...models.domain import Route, RouteBinStop


def pending_stops(route: Route) -> list[RouteBinStop]:
    return [stop for stop in route.stops if stop.status == "pending"]


def collected_stops(route: Route) -> list[RouteBinStop]:
    return [stop for stop in route.stops if stop.status == "collected"]


def skipped_stops(route: Route) -> list[RouteBinStop]:
    return [stop for stop in route.stops if stop.status == "skipped"]


def all_processed(route: Route) -> bool:
    return not pending_stops(route)


def find_stop(route: Route, bin_id: str) -> RouteBinStop:
    """Locate a stop by the bin's stable id or its record key."""
    for stop in route.stops:
        if stop.bin.bin_id == bin_id or stop.bin.record_id == bin_id:
            return stop
    raise NotFoundError(f"Bin {bin_id} is not part of route {route.route_id}")


def _require_pending(route: Route, stop: RouteBinStop) -> None:
    if stop.status == "collected":
        raise ConflictError(f"Bin {stop.bin.bin_id} already collected on route {route.route_id}")
    if stop.status != "pending":
        raise ConflictError(f"Bin {stop.bin.bin_id} already {stop.status} on route {route.route_id}")


def _replace_stop(route: Route, old: RouteBinStop, new: RouteBinStop) -> Route:
    return replace(route, stops=[new if stop is old else stop for stop in route.stops])


def mark_collected(
    route: Route,
    bin_id: str,
    actual_weight: float,
    collected_at: datetime,
    fill_level: Optional[float] = None,
) -> Route:
    """Return ``route`` with the stop collected; the input is left untouched.

    ``fill_level`` is the bin's level just before it is cleared and defaults
    to the level recorded on the stop's bin.
    """
    stop = find_stop(route, bin_id)
    _require_pending(route, stop)
    collected = replace(
        stop,
        status="collected",
        actual_weight=actual_weight,
        fill_level_at_collection=stop.bin.fill_level if fill_level is None else fill_level,
        collected_at=collected_at,
    )
    return _replace_stop(route, stop, collected)


def mark_skipped(route: Route, bin_id: str, reason: str, fill_level: Optional[float] = None) -> Route:
    stop = find_stop(route, bin_id)
    _require_pending(route, stop)
    skipped = replace(
        stop,
        status="skipped",
        notes=reason,
        fill_level_at_collection=stop.bin.fill_level if fill_level is None else fill_level,
    )
    return _replace_stop(route, stop, skipped)


def route_totals(route: Route) -> tuple[float, float]:
    """Total and recyclable weight over collected stops."""
    total = 0.0
    recyclable = 0.0
    for stop in collected_stops(route):
        weight = stop.actual_weight or 0.0
        total += weight
        if stop.bin.category == "Recyclable":
            recyclable += weight
    return total, recyclable

