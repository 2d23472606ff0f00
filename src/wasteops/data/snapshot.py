"""In-memory snapshot of bins and routes shared by the lifecycle services."""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from ..models.domain import Bin, Route


class SnapshotStore:
    """Explicitly owned holder of the last known bin and route records.

    Components receive the store by reference; every write goes through
    ``put_*``/``replace_*``/``remove_*`` so mutation points stay auditable.
    Records handed out are treated as immutable values: writers build a new
    record and put it back instead of changing one in place.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bins: dict[str, Bin] = {}
        self._routes: dict[str, Route] = {}

    # Bins ---------------------------------------------------------------

    def list_bins(self) -> list[Bin]:
        with self._lock:
            return list(self._bins.values())

    def get_bin(self, bin_id: str) -> Optional[Bin]:
        """Look a bin up by its stable id, falling back to the record key."""
        with self._lock:
            found = self._bins.get(bin_id)
            if found is not None:
                return found
            for candidate in self._bins.values():
                if candidate.record_id == bin_id:
                    return candidate
        return None

    def bins_by_record_id(self) -> dict[str, Bin]:
        with self._lock:
            return {bin_.record_id: bin_ for bin_ in self._bins.values()}

    def put_bin(self, bin_: Bin) -> None:
        with self._lock:
            self._bins[bin_.bin_id] = bin_

    def replace_bins(self, bins: Iterable[Bin]) -> None:
        with self._lock:
            self._bins = {bin_.bin_id: bin_ for bin_ in bins}

    def remove_bin(self, bin_id: str) -> Optional[Bin]:
        with self._lock:
            return self._bins.pop(bin_id, None)

    # Routes -------------------------------------------------------------

    def list_routes(self) -> list[Route]:
        with self._lock:
            return list(self._routes.values())

    def get_route(self, route_id: str) -> Optional[Route]:
        with self._lock:
            return self._routes.get(route_id)

    def put_route(self, route: Route) -> None:
        with self._lock:
            self._routes[route.route_id] = route

    def replace_routes(self, routes: Iterable[Route]) -> None:
        with self._lock:
            self._routes = {route.route_id: route for route in routes}

    def merge_routes(self, routes: Iterable[Route]) -> None:
        with self._lock:
            for route in routes:
                self._routes[route.route_id] = route
