"""Snapshot statistics and impact helpers."""

from .engine import (
    bin_statistics,
    collections_by_category,
    dashboard_statistics,
    impact_metrics,
    route_bin_counts,
    route_progress,
    sort_by_priority,
)

__all__ = [
    "bin_statistics",
    "dashboard_statistics",
    "route_progress",
    "route_bin_counts",
    "impact_metrics",
    "collections_by_category",
    "sort_by_priority",
]
