"""Day-boundary detection and the bulk "needs collection" reset of every bin."""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import date, datetime
from typing import Callable, Optional

from ...data.bin_registry import BinRegistry
from ...errors import CollectionError
from ...models.domain import Bin
from ...persistence.filesystem import FileStorage
from ..stats.engine import round_half_up

logger = logging.getLogger(__name__)

STATE_FILE = "daily_reset.json"


class DailyResetScheduler:
    """Polls the local date and resets all bins once per day.

    The scheduler is *armed* with the date of the last successful reset and
    is *resetting* while the bulk update runs. A failed reset leaves the
    armed date untouched, so the next tick tries again. Resets set fixed
    values, which makes a repeated reset on the same day harmless.
    """

    def __init__(
        self,
        registry: BinRegistry,
        *,
        storage: Optional[FileStorage] = None,
        clock: Callable[[], datetime] = datetime.now,
        fill_level: float = 85.0,
        weight_ratio: float = 0.85,
        poll_interval_seconds: float = 60.0,
    ) -> None:
        self.registry = registry
        self.storage = storage
        self.clock = clock
        self.fill_level = fill_level
        self.weight_ratio = weight_ratio
        self.poll_interval_seconds = poll_interval_seconds
        self.last_error: Optional[str] = None
        self._resetting = False
        self._running = False
        self._lock = threading.Lock()
        self.armed_date = self._load_armed_date() or self._today()

    def _today(self) -> date:
        return self.clock().date()

    def _state_path(self):
        assert self.storage is not None
        return self.storage.state_path(STATE_FILE)

    def _load_armed_date(self) -> Optional[date]:
        if self.storage is None:
            return None
        try:
            state = self.storage.read_json(self._state_path())
        except CollectionError as exc:
            logger.warning(f"Ignoring unreadable reset state: {exc}")
            return None
        if not state or not state.get("lastResetDate"):
            return None
        try:
            return date.fromisoformat(state["lastResetDate"])
        except ValueError:
            logger.warning(f"Ignoring invalid last reset date {state['lastResetDate']!r}")
            return None

    def _save_armed_date(self) -> None:
        if self.storage is not None:
            self.storage.write_json(self._state_path(), {"lastResetDate": self.armed_date.isoformat()})

    @property
    def state(self) -> str:
        return "resetting" if self._resetting else "armed"

    def status(self) -> dict:
        return {
            "state": self.state,
            "lastResetDate": self.armed_date.isoformat(),
            "running": self._running,
            "lastError": self.last_error,
        }

    def reset_values(self, bin_: Bin) -> dict:
        return {
            "fill_level": self.fill_level,
            "status": "full",
            "weight": float(round_half_up(bin_.capacity * self.weight_ratio)),
        }

    def reset_all(self) -> list[Bin]:
        """Mark every known bin as needing collection."""
        logger.info("Resetting all bins for a new collection day")
        updated = self.registry.bulk_update(self.reset_values)
        logger.info(f"Reset {len(updated)} bins")
        return updated

    def check(self) -> bool:
        """Run one tick; returns True when a reset was performed."""
        today = self._today()
        if today == self.armed_date:
            return False
        if not self._lock.acquire(blocking=False):
            return False
        try:
            self._resetting = True
            self.reset_all()
        except CollectionError as exc:
            self.last_error = str(exc)
            logger.warning(f"Daily reset failed, retrying on the next check: {exc}")
            return False
        finally:
            self._resetting = False
            self._lock.release()

        self.armed_date = today
        self.last_error = None
        self._save_armed_date()
        return True

    async def run_forever(self) -> None:
        self._running = True
        logger.info(f"Daily reset scheduler started (every {self.poll_interval_seconds:g}s)")
        try:
            while self._running:
                try:
                    await asyncio.to_thread(self.check)
                except Exception:  # pragma: no cover
                    logger.exception("Unexpected failure in daily reset check")
                await asyncio.sleep(self.poll_interval_seconds)
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
