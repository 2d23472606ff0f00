"""Supabase-backed remote store for bins and routes."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import Any, Optional

from ..data.records import (
    bin_changes_to_record,
    bin_from_record,
    bin_to_record,
    route_from_record,
    route_to_record,
)
from ..db.supabase import get_supabase_client
from ..errors import NotFoundError, TransportError
from ..models.domain import Bin, Route
from ..clients.gateway import RouteAction

logger = logging.getLogger(__name__)


class SupabaseCollectionGateway:
    """Stores bin and route documents in the ``bins``/``routes`` tables.

    Supabase has no route state machine of its own, so lifecycle actions
    write the route the core proposes and read it back.
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise ValueError(
                "Supabase not configured. Set WASTEOPS_SUPABASE_URL and WASTEOPS_SUPABASE_KEY environment variables."
            )

    def _execute(self, description: str, query: Any) -> list[dict]:
        try:
            response = query.execute()
        except Exception as exc:
            logger.warning(f"Supabase {description} failed: {exc}")
            raise TransportError(f"Supabase {description} failed: {exc}") from exc
        return list(response.data or [])

    # Bins ---------------------------------------------------------------

    @staticmethod
    def _bin_row(bin_: Bin) -> dict[str, Any]:
        return {
            "id": bin_.record_id,
            "bin_id": bin_.bin_id,
            "status": bin_.status,
            "bin_type": bin_.category,
            "data": bin_to_record(bin_),
        }

    def fetch_bins(self, status: Optional[str] = None, category: Optional[str] = None) -> list[Bin]:
        query = self.client.table("bins").select("*")
        if status:
            query = query.eq("status", status)
        if category:
            query = query.eq("bin_type", category)
        return [bin_from_record(row["data"]) for row in self._execute("bin query", query)]

    def _load_bins(self, record_ids: list[str]) -> dict[str, Bin]:
        if not record_ids:
            return {}
        rows = self._execute("bin lookup", self.client.table("bins").select("*").in_("id", record_ids))
        return {row["id"]: bin_from_record(row["data"]) for row in rows}

    def create_bin(self, payload: dict[str, Any]) -> Bin:
        record = {"_id": payload.get("_id") or uuid.uuid4().hex, **payload}
        bin_ = bin_from_record(record)
        rows = self._execute("bin insert", self.client.table("bins").insert(self._bin_row(bin_)))
        return bin_from_record(rows[0]["data"]) if rows else bin_

    def update_bin(self, bin_: Bin, changes: dict[str, Any]) -> Bin:
        record = {**bin_to_record(bin_), **bin_changes_to_record(changes)}
        updated = bin_from_record(record)
        row = self._bin_row(updated)
        rows = self._execute("bin update", self.client.table("bins").update(row).eq("id", bin_.record_id))
        if not rows:
            raise NotFoundError(f"Bin {bin_.bin_id} not found")
        return bin_from_record(rows[0]["data"])

    def delete_bin(self, bin_: Bin) -> None:
        self._execute("bin delete", self.client.table("bins").delete().eq("id", bin_.record_id))

    # Routes -------------------------------------------------------------

    @staticmethod
    def _route_row(route: Route) -> dict[str, Any]:
        return {
            "id": route.route_id,
            "status": route.status,
            "assigned_to": route.assigned_collector.collector_id if route.assigned_collector else None,
            "data": route_to_record(route),
        }

    def fetch_routes(self, status: Optional[str] = None) -> list[Route]:
        query = self.client.table("routes").select("*")
        if status:
            query = query.eq("status", status)
        return [route_from_record(row["data"]) for row in self._execute("route query", query)]

    def fetch_my_routes(self, collector_id: str, status: Optional[str] = None) -> list[Route]:
        query = self.client.table("routes").select("*").eq("assigned_to", collector_id)
        if status:
            query = query.eq("status", status)
        return [route_from_record(row["data"]) for row in self._execute("route query", query)]

    def create_route(self, payload: dict[str, Any]) -> Route:
        stop_records = payload.get("bins") or []
        bins_by_id = self._load_bins([str(item["bin"]) for item in stop_records])
        record = {"_id": payload.get("_id") or uuid.uuid4().hex, "status": "scheduled", **payload}
        route = route_from_record(record, bins_by_id)
        rows = self._execute("route insert", self.client.table("routes").insert(self._route_row(route)))
        return route_from_record(rows[0]["data"]) if rows else route

    def apply_route_action(self, action: RouteAction, proposed: Route) -> Route:
        rows = self._execute(
            f"route {action.kind}",
            self.client.table("routes").update(self._route_row(proposed)).eq("id", action.route_id),
        )
        if not rows:
            raise NotFoundError(f"Route {action.route_id} not found")
        return route_from_record(rows[0]["data"])

    def fetch_route_stats(self) -> dict[str, int]:
        rows = self._execute("route stats", self.client.table("routes").select("status, assigned_to"))
        counts = Counter(row.get("status") for row in rows)
        return {
            "totalRoutes": len(rows),
            "scheduledRoutes": counts.get("scheduled", 0),
            "inProgressRoutes": counts.get("in-progress", 0),
            "completedRoutes": counts.get("completed", 0),
            "cancelledRoutes": counts.get("cancelled", 0),
            "unassignedRoutes": sum(
                1 for row in rows if row.get("status") == "scheduled" and not row.get("assigned_to")
            ),
        }
