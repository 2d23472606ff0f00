"""Bin registry backed by the remote store and the shared snapshot."""

from __future__ import annotations

import logging
import math
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

from ..clients.gateway import CollectionGateway
from ..errors import NotFoundError, TransportError, ValidationError
from ..models.domain import BIN_STATUSES, WASTE_CATEGORIES, Bin
from .records import bin_changes_to_record, validate_fill_level, validate_weight
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = {"location", "zone", "category", "capacity", "fill_level", "weight", "status", "last_collection", "notes"}


def validate_bin_changes(changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - _MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown bin field(s): {', '.join(sorted(unknown))}")
    for key in ("capacity", "fill_level", "weight"):
        if key in changes:
            value = changes[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValidationError(f"{key} must be a finite number")
    if "fill_level" in changes:
        validate_fill_level(changes["fill_level"])
    if "weight" in changes:
        validate_weight(changes["weight"])
    if "capacity" in changes:
        validate_weight(changes["capacity"], "Capacity")
    if "status" in changes and changes["status"] not in BIN_STATUSES:
        raise ValidationError(f"Unknown bin status '{changes['status']}'")
    if "category" in changes and changes["category"] not in WASTE_CATEGORIES:
        raise ValidationError(f"Unknown waste category '{changes['category']}'")
    return changes


class BinRegistry:
    """Create/update/delete/query operations over the known bins.

    Every mutation of a given bin runs under that bin's lock, so a collection
    side effect and a daily reset touching the same bin are applied one after
    the other. The snapshot only changes after the remote store confirms.
    """

    def __init__(self, store: SnapshotStore, gateway: CollectionGateway) -> None:
        self.store = store
        self.gateway = gateway
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _bin_lock(self, bin_id: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(bin_id, threading.Lock())
        with lock:
            yield

    # Queries --------------------------------------------------------------

    def refresh(self, status: Optional[str] = None, category: Optional[str] = None) -> list[Bin]:
        bins = self.gateway.fetch_bins(status=status, category=category)
        if status is None and category is None:
            self.store.replace_bins(bins)
        else:
            for bin_ in bins:
                self.store.put_bin(bin_)
        logger.info(f"Loaded {len(bins)} bins from remote store")
        return bins

    def list_bins(self, status: Optional[str] = None, category: Optional[str] = None) -> list[Bin]:
        bins = self.store.list_bins()
        if status:
            bins = [bin_ for bin_ in bins if bin_.status == status]
        if category:
            bins = [bin_ for bin_ in bins if bin_.category == category]
        return sorted(bins, key=lambda bin_: bin_.bin_id)

    def get_bin(self, bin_id: str) -> Bin:
        bin_ = self.store.get_bin(bin_id)
        if bin_ is None:
            raise NotFoundError(f"Bin {bin_id} not found")
        return bin_

    # Mutations ------------------------------------------------------------

    def create_bin(
        self,
        *,
        location: str,
        zone: str,
        category: str,
        capacity: float,
        bin_id: Optional[str] = None,
        fill_level: float = 0.0,
        weight: float = 0.0,
        status: str = "active",
        notes: Optional[str] = None,
    ) -> Bin:
        if not location.strip():
            raise ValidationError("Location is required")
        if not zone.strip():
            raise ValidationError("Zone is required")
        changes = validate_bin_changes(
            {
                "location": location.strip(),
                "zone": zone.strip(),
                "category": category,
                "capacity": capacity,
                "fill_level": fill_level,
                "weight": weight,
                "status": status,
                "notes": notes,
            }
        )
        payload = bin_changes_to_record(changes)
        if bin_id:
            if self.store.get_bin(bin_id) is not None:
                raise ValidationError(f"Bin {bin_id} already exists")
            payload["binId"] = bin_id
        created = self.gateway.create_bin(payload)
        self.store.put_bin(created)
        logger.info(f"Created bin {created.bin_id} in {created.zone}")
        return created

    def update_bin(self, bin_id: str, changes: dict[str, Any]) -> Bin:
        validate_bin_changes(changes)
        with self._bin_lock(self.get_bin(bin_id).bin_id):
            current = self.get_bin(bin_id)
            updated = self.gateway.update_bin(current, changes)
            self.store.put_bin(updated)
        return updated

    def delete_bin(self, bin_id: str) -> None:
        with self._bin_lock(self.get_bin(bin_id).bin_id):
            current = self.get_bin(bin_id)
            self.gateway.delete_bin(current)
            self.store.remove_bin(current.bin_id)
        logger.info(f"Deleted bin {bin_id}")

    def mark_collected(self, bin_id: str, collected_at: datetime) -> Bin:
        """Clear a bin after its contents were collected."""
        return self.update_bin(
            bin_id,
            {"fill_level": 0.0, "weight": 0.0, "status": "active", "last_collection": collected_at},
        )

    def bulk_update(self, build_changes: Callable[[Bin], dict[str, Any]]) -> list[Bin]:
        """Apply per-bin changes to every known bin.

        Bins that were updated stay updated; if any bin failed, a
        ``TransportError`` listing the failures is raised after the whole
        pass so callers can retry the bulk operation.
        """
        updated: list[Bin] = []
        failures: list[str] = []
        for bin_ in self.list_bins():
            try:
                updated.append(self.update_bin(bin_.bin_id, build_changes(bin_)))
            except (TransportError, NotFoundError) as exc:
                logger.warning(f"Bulk update failed for bin {bin_.bin_id}: {exc}")
                failures.append(bin_.bin_id)
        if failures:
            raise TransportError(f"Bulk update failed for {len(failures)} bin(s): {', '.join(failures)}")
        return updated
