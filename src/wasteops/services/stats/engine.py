"""Derived statistics over a snapshot of bins and routes.

Everything here is a pure function of its arguments: callers pass the
current snapshot after each mutation and recompute, nothing is cached.
Rounding follows the half-up convention of the dashboards (``2.5 -> 3``).
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from ...models.domain import BIN_STATUSES, ROUTE_STATUSES, WASTE_CATEGORIES, Bin, Route

COMPLETED_FILL_THRESHOLD = 50.0
HIGH_PRIORITY_FILL = 85.0
NORMAL_PRIORITY_FILL = 60.0
CO2_PER_KG = 0.5
CO2_PER_TREE = 0.06
DEFAULT_MINUTES_PER_BIN = 15.0

PRIORITY_RANK = {"high": 0, "normal": 1, "low": 2}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(part / total * 100)


# Bins -------------------------------------------------------------------


def bin_statistics(bins: Iterable[Bin]) -> dict:
    """Counts of bins by operational status and by waste category."""
    bins = list(bins)
    by_status = Counter(bin_.status for bin_ in bins)
    by_category = Counter(bin_.category for bin_ in bins)
    return {
        "total": len(bins),
        "byStatus": {status: by_status.get(status, 0) for status in BIN_STATUSES},
        "byCategory": {category: by_category.get(category, 0) for category in WASTE_CATEGORIES},
    }


def classify_bin(bin_: Bin) -> str:
    """Place a bin in exactly one of ``issue``, ``pending`` or ``completed``.

    Out-of-service bins are issues whatever their fill level; among the rest
    a full bin or one at least half full needs collection, and an active bin
    under half full counts as done for the day.
    """
    if bin_.status in ("maintenance", "inactive"):
        return "issue"
    if bin_.status == "full" or bin_.fill_level >= COMPLETED_FILL_THRESHOLD:
        return "pending"
    return "completed"


def completion_classes(bins: Iterable[Bin]) -> dict[str, list[Bin]]:
    classes: dict[str, list[Bin]] = {"completed": [], "pending": [], "issue": []}
    for bin_ in bins:
        classes[classify_bin(bin_)].append(bin_)
    return classes


def efficiency(bins: Sequence[Bin]) -> int:
    """Share of bins classified completed, as a whole percentage."""
    completed = sum(1 for bin_ in bins if classify_bin(bin_) == "completed")
    return _percentage(completed, len(bins))


def estimate_eta(
    pending_count: int,
    now: Optional[datetime] = None,
    minutes_per_bin: float = DEFAULT_MINUTES_PER_BIN,
) -> str:
    """Local time of day when the remaining bins should be done, e.g. ``3:45 PM``."""
    current = now or datetime.now().astimezone()
    if current.tzinfo is not None:
        current = current.astimezone()
    eta = current + timedelta(minutes=max(pending_count, 0) * minutes_per_bin)
    hour = eta.hour % 12 or 12
    suffix = "AM" if eta.hour < 12 else "PM"
    return f"{hour}:{eta.minute:02d} {suffix}"


def bin_priority(bin_: Bin) -> str:
    if bin_.fill_level >= HIGH_PRIORITY_FILL:
        return "high"
    if bin_.fill_level >= NORMAL_PRIORITY_FILL:
        return "normal"
    return "low"


def sort_by_priority(bins: Iterable[Bin]) -> list[Bin]:
    """High priority first; ties keep their incoming order."""
    return sorted(bins, key=lambda bin_: PRIORITY_RANK[bin_priority(bin_)])


def impact_metrics(bins: Iterable[Bin]) -> dict:
    """Environmental impact of the bins collected today.

    Capacity of each completed bin stands in for the amount just collected.
    """
    recycled = sum(bin_.capacity or 0.0 for bin_ in bins if classify_bin(bin_) == "completed")
    co2_saved = round_half_up(recycled * CO2_PER_KG)
    trees_saved = round_half_up(co2_saved / CO2_PER_TREE)
    return {"recycled": recycled, "co2Saved": co2_saved, "treesSaved": trees_saved}


def collections_by_category(bins: Iterable[Bin]) -> list[dict]:
    counts: Counter[str] = Counter()
    weights: dict[str, float] = {category: 0.0 for category in WASTE_CATEGORIES}
    for bin_ in bins:
        if classify_bin(bin_) != "completed" or bin_.category not in weights:
            continue
        counts[bin_.category] += 1
        weights[bin_.category] += bin_.capacity or 0.0
    return [
        {"category": category, "count": counts.get(category, 0), "weight": weights[category]}
        for category in WASTE_CATEGORIES
    ]


def dashboard_statistics(
    bins: Sequence[Bin],
    now: Optional[datetime] = None,
    minutes_per_bin: float = DEFAULT_MINUTES_PER_BIN,
) -> dict:
    """Summary for the collector's "today" view."""
    classes = completion_classes(bins)
    completed = len(classes["completed"])
    pending = len(classes["pending"])
    percentage = _percentage(completed, len(bins))
    return {
        "completed": completed,
        "remaining": pending,
        "issues": len(classes["issue"]),
        "total": len(bins),
        "percentage": percentage,
        "efficiency": percentage,
        "eta": estimate_eta(pending, now=now, minutes_per_bin=minutes_per_bin),
    }


# Routes -----------------------------------------------------------------


def route_bin_counts(route: Route) -> dict:
    counts = Counter(stop.status for stop in route.stops)
    return {
        "total": len(route.stops),
        "collected": counts.get("collected", 0),
        "skipped": counts.get("skipped", 0),
        "pending": counts.get("pending", 0),
    }


def route_progress(route: Route) -> int:
    """Collected stops as a whole percentage; 0 for a route without stops."""
    counts = route_bin_counts(route)
    return _percentage(counts["collected"], counts["total"])


def route_status_counts(routes: Iterable[Route]) -> dict:
    """Route totals in the shape of the backend's ``/routes/stats``."""
    routes = list(routes)
    by_status = Counter(route.status for route in routes)
    keys = {
        "scheduled": "scheduledRoutes",
        "in-progress": "inProgressRoutes",
        "completed": "completedRoutes",
        "cancelled": "cancelledRoutes",
    }
    stats = {"totalRoutes": len(routes)}
    for status in ROUTE_STATUSES:
        stats[keys[status]] = by_status.get(status, 0)
    stats["unassignedRoutes"] = sum(
        1 for route in routes if route.status == "scheduled" and route.assigned_collector is None
    )
    return stats
