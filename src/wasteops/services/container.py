"""Wiring of the snapshot, registry, lifecycle manager and their collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..clients.gateway import CollectionGateway
from ..config import Settings
from ..data.bin_registry import BinRegistry
from ..data.snapshot import SnapshotStore
from ..errors import TransportError
from ..models.domain import PreRouteChecklist
from ..persistence.filesystem import FileStorage
from ..persistence.offline_queue import OfflineQueue
from .reports.export import DirectoryShareTarget, ReportExporter
from .routes.lifecycle import RouteLifecycleManager, build_checklist
from .scheduling.daily_reset import DailyResetScheduler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    settings: Settings
    storage: FileStorage
    store: SnapshotStore
    gateway: CollectionGateway
    registry: BinRegistry
    queue: OfflineQueue
    lifecycle: RouteLifecycleManager
    scheduler: DailyResetScheduler
    exporter: ReportExporter

    def checklist_template(self) -> list[dict]:
        return [{"id": item_id, "label": label, "checked": False} for item_id, label in self.settings.checklist_definitions()]

    def build_checklist(self, checked_ids: list[str], completed_at: Optional[datetime]) -> PreRouteChecklist:
        return build_checklist(self.settings.checklist_definitions(), checked_ids, completed_at)

    def load_snapshot(self) -> None:
        """Fill the snapshot from the remote store; offline starts keep it empty."""
        try:
            self.registry.refresh()
            self.lifecycle.refresh_routes()
        except TransportError as exc:
            logger.warning(f"Starting without remote snapshot: {exc}")


def build_gateway(settings: Settings) -> CollectionGateway:
    if settings.backend == "supabase":
        from ..persistence.supabase_gateway import SupabaseCollectionGateway

        return SupabaseCollectionGateway()
    from ..clients.http_gateway import HttpCollectionGateway

    return HttpCollectionGateway(
        base_url=settings.backend_base_url,
        token=settings.backend_token,
        timeout=settings.backend_timeout_seconds,
    )


def build_container(
    settings: Settings,
    gateway: Optional[CollectionGateway] = None,
    storage: Optional[FileStorage] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ServiceContainer:
    storage = storage or FileStorage(settings.data_root)
    gateway = gateway or build_gateway(settings)
    store = SnapshotStore()
    registry = BinRegistry(store, gateway)
    queue = OfflineQueue(storage)

    lifecycle_kwargs = {"clock": clock} if clock else {}
    lifecycle = RouteLifecycleManager(store, registry, gateway, queue=queue, **lifecycle_kwargs)

    scheduler_kwargs = {"clock": clock} if clock else {}
    scheduler = DailyResetScheduler(
        registry,
        storage=storage,
        fill_level=settings.reset_fill_level,
        weight_ratio=settings.reset_weight_ratio,
        poll_interval_seconds=settings.reset_poll_interval_seconds,
        **scheduler_kwargs,
    )

    share_target = DirectoryShareTarget(settings.report_export_dir) if settings.report_export_dir else None
    exporter_kwargs = {"clock": clock} if clock else {}
    exporter = ReportExporter(storage, share_target=share_target, **exporter_kwargs)

    logger.info(f"Service container ready (backend={settings.backend}, data_root={storage.root})")
    return ServiceContainer(
        settings=settings,
        storage=storage,
        store=store,
        gateway=gateway,
        registry=registry,
        queue=queue,
        lifecycle=lifecycle,
        scheduler=scheduler,
        exporter=exporter,
    )
