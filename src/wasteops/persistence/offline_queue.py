"""Local FIFO queue of mutations awaiting replay against the remote store."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..errors import CollectionError, TransportError
from .filesystem import FileStorage

logger = logging.getLogger(__name__)

QUEUE_FILE = "offline_queue.json"


@dataclass(slots=True)
class QueuedMutation:
    type: str
    route_id: Optional[str]
    bin_id: Optional[str]
    payload: dict[str, Any]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_record(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "routeId": self.route_id,
            "binId": self.bin_id,
            "payload": self.payload,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "QueuedMutation":
        return cls(
            type=str(record["type"]),
            route_id=record.get("routeId"),
            bin_id=record.get("binId"),
            payload=dict(record.get("payload") or {}),
            timestamp=str(record.get("timestamp") or ""),
        )


@dataclass(slots=True)
class ReplayResult:
    applied: list[QueuedMutation] = field(default_factory=list)
    rejected: list[tuple[QueuedMutation, str]] = field(default_factory=list)
    remaining: int = 0
    error: Optional[str] = None


class OfflineQueue:
    """Persisted list of failed writes, replayed in enqueue order.

    Replay is not deduplicated; entries the remote store rejects as invalid
    or conflicting are dropped and reported, a transport failure stops the
    replay and leaves that entry and everything after it queued.
    """

    def __init__(self, storage: FileStorage) -> None:
        self.storage = storage
        self.path = storage.state_path(QUEUE_FILE)
        # Reentrant: replay handlers may enqueue follow-up entries.
        self._lock = threading.RLock()

    def _load(self) -> list[QueuedMutation]:
        records = self.storage.read_json(self.path) or []
        return [QueuedMutation.from_record(record) for record in records]

    def _save(self, entries: list[QueuedMutation]) -> None:
        self.storage.write_json(self.path, [entry.to_record() for entry in entries])

    def enqueue(self, entry: QueuedMutation) -> None:
        with self._lock:
            entries = self._load()
            entries.append(entry)
            self._save(entries)
        logger.info(f"Queued offline {entry.type} for route={entry.route_id} bin={entry.bin_id}")

    def entries(self) -> list[QueuedMutation]:
        with self._lock:
            return self._load()

    def __len__(self) -> int:
        return len(self.entries())

    def clear(self) -> None:
        with self._lock:
            self._save([])

    def replay(self, handler: Callable[[QueuedMutation], Any]) -> ReplayResult:
        result = ReplayResult()
        with self._lock:
            entries = self._load()
            while entries:
                entry = entries[0]
                try:
                    handler(entry)
                except TransportError as exc:
                    result.error = str(exc)
                    logger.warning(f"Offline replay stopped at {entry.type} ({len(entries)} left): {exc}")
                    break
                except CollectionError as exc:
                    logger.warning(f"Remote store rejected queued {entry.type} for route={entry.route_id}: {exc}")
                    result.rejected.append((entry, str(exc)))
                else:
                    result.applied.append(entry)
                entries = self._load()[1:]
                self._save(entries)
            result.remaining = len(self._load())
        return result
