"""Route lifecycle orchestration: the only place route status changes."""

from __future__ import annotations

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterator, Optional, Sequence

from ...clients.gateway import CollectionGateway, RouteAction
from ...data.bin_registry import BinRegistry
from ...data.records import (
    checklist_to_record,
    collector_to_record,
    format_timestamp,
    parse_timestamp,
    route_from_record,
    route_to_record,
)
from ...data.snapshot import SnapshotStore
from ...errors import ConflictError, NotFoundError, TransportError, ValidationError
from ...models.domain import ChecklistItem, Collector, PreRouteChecklist, Route
from ...persistence.offline_queue import OfflineQueue, QueuedMutation, ReplayResult
from ..stats.engine import round_half_up
from . import tracker

logger = logging.getLogger(__name__)

# Offline queue entry type for each queued route action.
_QUEUE_TYPES = {
    "start": "startRoute",
    "collect": "collectBin",
    "skip": "skipBin",
    "complete": "completeRoute",
}
_ACTION_KINDS = {value: key for key, value in _QUEUE_TYPES.items()}
BIN_UPDATE_TYPE = "updateBin"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_checklist(
    definitions: Sequence[tuple[str, str]],
    checked_ids: Sequence[str],
    completed_at: Optional[datetime] = None,
) -> PreRouteChecklist:
    """Build a checklist from ``(id, label)`` definitions and the ids ticked off."""
    checked = set(checked_ids)
    unknown = checked - {item_id for item_id, _ in definitions}
    if unknown:
        raise ValidationError(f"Unknown checklist item(s): {', '.join(sorted(unknown))}")
    items = [ChecklistItem(item_id=item_id, label=label, checked=item_id in checked) for item_id, label in definitions]
    return PreRouteChecklist(items=items, completed_at=completed_at)


def validate_weight_input(actual_weight: Any) -> float:
    if isinstance(actual_weight, bool) or not isinstance(actual_weight, (int, float)):
        raise ValidationError("Invalid weight: actual weight must be a number")
    if not math.isfinite(actual_weight) or actual_weight < 0:
        raise ValidationError(f"Invalid weight: {actual_weight}")
    return float(actual_weight)


class RouteLifecycleManager:
    """Sole authority for route status transitions.

    Every write is two-phase: the proposed route is computed locally, sent to
    the remote store, and only the store's answer is committed to the
    snapshot. Transport failures of lifecycle actions are queued for replay
    and re-raised. Operations on the same route run one at a time.
    """

    def __init__(
        self,
        store: SnapshotStore,
        registry: BinRegistry,
        gateway: CollectionGateway,
        queue: Optional[OfflineQueue] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.registry = registry
        self.gateway = gateway
        self.queue = queue
        self.clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _route_lock(self, route_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(route_id, threading.Lock())
        with lock:
            yield

    # Reads ----------------------------------------------------------------

    def get_route(self, route_id: str) -> Route:
        route = self.store.get_route(route_id)
        if route is None:
            raise NotFoundError(f"Route {route_id} not found")
        return route

    def list_routes(self, status: Optional[str] = None, collector_id: Optional[str] = None) -> list[Route]:
        routes = self.store.list_routes()
        if status:
            routes = [route for route in routes if route.status == status]
        if collector_id:
            routes = [
                route
                for route in routes
                if route.assigned_collector and route.assigned_collector.collector_id == collector_id
            ]
        return sorted(routes, key=lambda route: (route.scheduled_date, route.scheduled_time, route.name))

    def refresh_routes(self, status: Optional[str] = None) -> list[Route]:
        routes = self.gateway.fetch_routes(status=status)
        if status is None:
            self.store.replace_routes(routes)
        else:
            self.store.merge_routes(routes)
        return routes

    def refresh_my_routes(self, collector_id: str, status: Optional[str] = None) -> list[Route]:
        routes = self.gateway.fetch_my_routes(collector_id, status=status)
        self.store.merge_routes(routes)
        return routes

    def fetch_route_stats(self) -> dict[str, int]:
        return self.gateway.fetch_route_stats()

    # Administrative actions ---------------------------------------------

    def create_route(
        self,
        name: str,
        scheduled_date: date,
        scheduled_time: str,
        bin_ids: Sequence[str],
        collector: Optional[Collector] = None,
        notes: Optional[str] = None,
    ) -> Route:
        if not name or not name.strip():
            raise ValidationError("Route name is required")
        if not scheduled_time or not scheduled_time.strip():
            raise ValidationError("Scheduled time is required")
        if not bin_ids:
            raise ValidationError("A route needs at least one bin")
        if len(set(bin_ids)) != len(bin_ids):
            raise ValidationError("A bin can only appear once in a route")
        if any(existing.name == name.strip() for existing in self.store.list_routes()):
            raise ValidationError("Route name already exists")

        try:
            bins = [self.registry.get_bin(bin_id) for bin_id in bin_ids]
        except NotFoundError as exc:
            raise ValidationError(f"One or more bins not found: {exc}") from exc

        payload = {
            "routeName": name.strip(),
            "scheduledDate": scheduled_date.isoformat(),
            "scheduledTime": scheduled_time.strip(),
            "bins": [
                {"bin": bin_.record_id, "order": order, "expectedWeight": bin_.weight}
                for order, bin_ in enumerate(bins, start=1)
            ],
            "assignedTo": collector_to_record(collector),
            "notes": notes,
        }
        route = self.gateway.create_route(payload)
        orders = [stop.order for stop in route.stops]
        if len(set(orders)) != len(orders):
            raise ValidationError(f"Route {route.route_id} came back with duplicate stop orders")
        self.store.put_route(route)
        logger.info(f"Created route {route.route_id} '{route.name}' with {len(route.stops)} bins")
        return route

    def assign_collector(self, route_id: str, collector: Collector) -> Route:
        with self._route_lock(route_id):
            route = self.get_route(route_id)
            if route.status != "scheduled":
                raise ConflictError(f"Route {route_id} is {route.status}; collectors can only change while scheduled")
            proposed = replace(route, assigned_collector=collector)
            action = RouteAction(kind="assign", route_id=route_id, payload={"collectorId": collector.collector_id})
            return self._dispatch(action, proposed, queue_on_failure=False)

    def cancel_route(self, route_id: str) -> Route:
        with self._route_lock(route_id):
            route = self.get_route(route_id)
            if route.status != "scheduled":
                raise ConflictError(f"Route {route_id} is {route.status} and cannot be cancelled")
            proposed = replace(route, status="cancelled")
            result = self._dispatch(RouteAction(kind="cancel", route_id=route_id), proposed, queue_on_failure=False)
        logger.info(f"Route {route_id} cancelled")
        return result

    # Collector actions ----------------------------------------------------

    def start_route(self, route_id: str, checklist: Optional[PreRouteChecklist]) -> Route:
        with self._route_lock(route_id):
            route = self.get_route(route_id)
            if route.status == "in-progress":
                raise ConflictError(f"Route {route_id} is already in progress")
            if route.status != "scheduled":
                raise ConflictError(f"Route {route_id} is {route.status} and cannot be started")
            if checklist is None or not checklist.is_complete:
                raise ValidationError("Pre-route checklist incomplete: every item must be checked and timestamped")

            proposed = replace(route, status="in-progress", started_at=self.clock(), checklist=checklist)
            action = RouteAction(
                kind="start",
                route_id=route_id,
                payload={"preRouteChecklist": checklist_to_record(checklist)},
            )
            result = self._dispatch(action, proposed)
        logger.info(f"Route {route_id} started")
        return result

    def collect_bin(self, route_id: str, bin_id: str, actual_weight: Any) -> Route:
        weight = validate_weight_input(actual_weight)
        with self._route_lock(route_id):
            route = self._require_in_progress(route_id, "collect bins")
            stop = tracker.find_stop(route, bin_id)
            current_bin = self.store.get_bin(stop.bin.bin_id) or stop.bin
            collected_at = self.clock()
            proposed = tracker.mark_collected(route, bin_id, weight, collected_at, fill_level=current_bin.fill_level)
            action = RouteAction(
                kind="collect",
                route_id=route_id,
                bin_id=stop.bin.bin_id,
                bin_record_id=stop.bin.record_id,
                payload={"actualWeight": weight},
            )
            result = self._dispatch(action, proposed)
            self._clear_collected_bin(stop.bin.bin_id, collected_at)
        logger.info(f"Bin {bin_id} collected on route {route_id} ({weight:g} kg)")
        return result

    def skip_bin(self, route_id: str, bin_id: str, reason: Optional[str]) -> Route:
        if not isinstance(reason, str) or not reason.strip():
            raise ValidationError("A reason is required to skip a bin")
        reason = reason.strip()
        with self._route_lock(route_id):
            route = self._require_in_progress(route_id, "skip bins")
            stop = tracker.find_stop(route, bin_id)
            current_bin = self.store.get_bin(stop.bin.bin_id) or stop.bin
            proposed = tracker.mark_skipped(route, bin_id, reason, fill_level=current_bin.fill_level)
            action = RouteAction(
                kind="skip",
                route_id=route_id,
                bin_id=stop.bin.bin_id,
                bin_record_id=stop.bin.record_id,
                payload={"reason": reason},
            )
            result = self._dispatch(action, proposed)
        logger.info(f"Bin {bin_id} skipped on route {route_id}: {reason}")
        return result

    def complete_route(self, route_id: str) -> Route:
        with self._route_lock(route_id):
            route = self.get_route(route_id)
            if route.status != "in-progress":
                raise ConflictError(f"Route {route_id} has not been started")
            pending = tracker.pending_stops(route)
            if pending:
                raise ConflictError(
                    f"Not all bins processed on route {route_id}: {len(pending)} of {len(route.stops)} still pending"
                )

            completed_at = self.clock()
            started_at = route.started_at or completed_at
            if completed_at < started_at:
                completed_at = started_at
            waste_collected, recyclable_waste = tracker.route_totals(route)
            proposed = replace(
                route,
                status="completed",
                completed_at=completed_at,
                route_duration=round_half_up((completed_at - started_at).total_seconds() / 60.0),
                waste_collected=waste_collected,
                recyclable_waste=recyclable_waste,
            )
            result = self._dispatch(RouteAction(kind="complete", route_id=route_id), proposed)
        logger.info(
            f"Route {route_id} completed in {result.route_duration} min, {result.waste_collected:g} kg collected"
        )
        return result

    # Offline replay -------------------------------------------------------

    def sync_offline_queue(self) -> ReplayResult:
        if self.queue is None:
            return ReplayResult()
        result = self.queue.replay(self._replay_entry)
        logger.info(
            f"Offline replay: {len(result.applied)} applied, {len(result.rejected)} rejected, {result.remaining} remaining"
        )
        return result

    def _replay_entry(self, entry: QueuedMutation) -> None:
        if entry.type == BIN_UPDATE_TYPE:
            changes = dict(entry.payload.get("changes") or {})
            if "last_collection" in changes:
                changes["last_collection"] = parse_timestamp(changes["last_collection"])
            self.registry.update_bin(str(entry.bin_id), changes)
            return
        kind = _ACTION_KINDS.get(entry.type)
        if kind is None or not entry.route_id:
            raise ValidationError(f"Unsupported queued mutation '{entry.type}'")
        action = RouteAction(
            kind=kind,
            route_id=entry.route_id,
            bin_id=entry.bin_id,
            bin_record_id=entry.payload.get("binRecordId"),
            payload=dict(entry.payload.get("action") or {}),
        )
        queued_route = route_from_record(entry.payload["route"])
        with self._route_lock(entry.route_id):
            proposed = self._replay_proposal(action, queued_route)
            returned = self.gateway.apply_route_action(action, proposed)
            self.store.put_route(returned)
            if kind == "collect" and entry.bin_id:
                stop = tracker.find_stop(returned, entry.bin_id)
                self._clear_collected_bin(stop.bin.bin_id, stop.collected_at or self.clock())

    def _replay_proposal(self, action: RouteAction, queued_route: Route) -> Route:
        """Re-derive a queued change against the route as currently known.

        Earlier replays or direct retries may have advanced the route since
        the entry was queued. An entry whose precondition no longer holds is
        rejected with ``ConflictError`` instead of sending its stale route.
        """
        current = self.store.get_route(action.route_id)
        if current is None:
            return queued_route
        if action.kind == "start":
            if current.status != "scheduled":
                raise ConflictError(f"Route {action.route_id} is {current.status}; queued start is stale")
            return replace(
                current,
                status="in-progress",
                started_at=queued_route.started_at,
                checklist=queued_route.checklist,
            )
        if action.kind == "complete":
            if current.status != "in-progress" or not tracker.all_processed(current):
                raise ConflictError(f"Route {action.route_id} is {current.status}; queued completion is stale")
            started_at = current.started_at or queued_route.started_at
            completed_at = queued_route.completed_at or self.clock()
            if started_at is None or completed_at < started_at:
                started_at = completed_at
            waste_collected, recyclable_waste = tracker.route_totals(current)
            return replace(
                current,
                status="completed",
                completed_at=completed_at,
                route_duration=round_half_up((completed_at - started_at).total_seconds() / 60.0),
                waste_collected=waste_collected,
                recyclable_waste=recyclable_waste,
            )
        if action.kind in ("collect", "skip") and action.bin_id:
            if current.status != "in-progress":
                raise ConflictError(f"Route {action.route_id} is {current.status}; queued {action.kind} is stale")
            queued_stop = tracker.find_stop(queued_route, action.bin_id)
            current_stop = tracker.find_stop(current, action.bin_id)
            if current_stop.status != "pending":
                raise ConflictError(f"Bin {action.bin_id} already {current_stop.status} on route {action.route_id}")
            stops = [queued_stop if stop is current_stop else stop for stop in current.stops]
            return replace(current, stops=stops)
        return queued_route

    # Internals ------------------------------------------------------------

    def _require_in_progress(self, route_id: str, purpose: str) -> Route:
        route = self.get_route(route_id)
        if route.status != "in-progress":
            raise ConflictError(f"Route {route_id} must be in progress to {purpose} (currently {route.status})")
        return route

    def _dispatch(self, action: RouteAction, proposed: Route, *, queue_on_failure: bool = True) -> Route:
        try:
            returned = self.gateway.apply_route_action(action, proposed)
        except TransportError:
            if queue_on_failure and self.queue is not None and action.kind in _QUEUE_TYPES:
                self.queue.enqueue(
                    QueuedMutation(
                        type=_QUEUE_TYPES[action.kind],
                        route_id=action.route_id,
                        bin_id=action.bin_id,
                        payload={
                            "action": action.payload,
                            "binRecordId": action.bin_record_id,
                            "route": route_to_record(proposed),
                        },
                        timestamp=format_timestamp(self.clock()) or "",
                    )
                )
            raise
        self.store.put_route(returned)
        return returned

    def _clear_collected_bin(self, bin_id: str, collected_at: datetime) -> None:
        if self.store.get_bin(bin_id) is None:
            logger.warning(f"Collected bin {bin_id} is not in the registry; skipping fill level reset")
            return
        try:
            self.registry.mark_collected(bin_id, collected_at)
        except TransportError as exc:
            # The route already recorded the collection remotely; the bin
            # reset is retried from the queue.
            logger.warning(f"Bin {bin_id} reset after collection failed, queued for replay: {exc}")
            if self.queue is not None:
                self.queue.enqueue(
                    QueuedMutation(
                        type=BIN_UPDATE_TYPE,
                        route_id=None,
                        bin_id=bin_id,
                        payload={
                            "changes": {
                                "fill_level": 0.0,
                                "weight": 0.0,
                                "status": "active",
                                "last_collection": format_timestamp(collected_at),
                            }
                        },
                        timestamp=format_timestamp(self.clock()) or "",
                    )
                )
