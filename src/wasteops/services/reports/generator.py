"""Render completed routes as CSV completion reports."""

from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Optional

from ...models.domain import Route, RouteBinStop
from ..routes import tracker

NOT_AVAILABLE = "N/A"
BIN_DETAIL_HEADER = ["Bin ID", "Location", "Status", "Fill Level (%)", "Weight (kg)", "Collection Time", "Notes"]


def format_duration(minutes: int) -> str:
    """``145 -> "2h 25m"``, ``45 -> "45 min"``."""
    minutes = int(minutes or 0)
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m"


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _local(value: datetime) -> datetime:
    return value.astimezone() if value.tzinfo is not None else value


def format_local_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return NOT_AVAILABLE
    local = _local(value)
    return f"{local.month}/{local.day}/{local.year}, {format_local_time(local)}"


def format_local_time(value: Optional[datetime]) -> str:
    if value is None:
        return NOT_AVAILABLE
    local = _local(value)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d}:{local.second:02d} {suffix}"


def _stop_row(stop: RouteBinStop) -> list[str]:
    fill_level = (
        format_number(stop.fill_level_at_collection) if stop.fill_level_at_collection is not None else NOT_AVAILABLE
    )
    weight = format_number(stop.actual_weight) if stop.actual_weight is not None else NOT_AVAILABLE
    return [
        stop.bin.bin_id or NOT_AVAILABLE,
        stop.bin.location or NOT_AVAILABLE,
        stop.status,
        fill_level,
        weight,
        format_local_time(stop.collected_at),
        stop.notes or "",
    ]


def route_to_report(route: Route) -> str:
    """Render ``route`` as the tabular completion report.

    Sections: route information, statistics, then one row per bin stop in
    stop order.
    """
    collector = route.assigned_collector.full_name if route.assigned_collector else ""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(
        [
            ["Route Completion Report"],
            [],
            ["Route Information"],
            ["Route Name", route.name],
            ["Collector", collector],
            ["Started At", format_local_datetime(route.started_at)],
            ["Completed At", format_local_datetime(route.completed_at)],
            ["Total Duration", format_duration(route.route_duration)],
            [],
            ["Statistics"],
            ["Total Bins", len(route.stops)],
            ["Collected Bins", len(tracker.collected_stops(route))],
            ["Skipped Bins", len(tracker.skipped_stops(route))],
            ["Total Waste Collected", f"{format_number(route.waste_collected)} kg"],
            ["Recyclable Waste", f"{format_number(route.recyclable_waste)} kg"],
            [],
            ["Bin Details"],
            BIN_DETAIL_HEADER,
        ]
    )
    writer.writerows(_stop_row(stop) for stop in sorted(route.stops, key=lambda stop: stop.order))
    return buffer.getvalue()
