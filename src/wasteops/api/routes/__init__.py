"""Route group exports."""

from . import bins, dashboard, health, reports, reset, routes, sync

__all__ = ["health", "bins", "dashboard", "routes", "reports", "sync", "reset"]
