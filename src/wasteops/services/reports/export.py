"""Persist and share rendered reports, with local snapshots for offline viewing."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from ...data.records import format_timestamp, route_to_record
from ...errors import CollectionError, ExportError, ValidationError
from ...models.domain import Route
from ...persistence.filesystem import FileStorage
from .generator import route_to_report

logger = logging.getLogger(__name__)

MIME_TYPES = {"csv": "text/csv", "txt": "text/plain"}


class ShareTarget(Protocol):
    """Platform facility that hands a written report to the user."""

    def is_available(self) -> bool: ...

    def share(self, path: Path, mime_type: str) -> Path: ...


class DirectoryShareTarget:
    """Shares reports by copying them into a configured directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def is_available(self) -> bool:
        return self.directory.is_dir()

    def share(self, path: Path, mime_type: str) -> Path:
        destination = self.directory / path.name
        shutil.copyfile(path, destination)
        return destination


@dataclass(slots=True)
class ExportResult:
    success: bool
    message: str
    content: Optional[str] = None
    path: Optional[Path] = None
    shared_to: Optional[Path] = None


def report_filename(route: Route, report_format: str, today: datetime) -> str:
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", route.name)
    return f"Route_Report_{safe_name}_{today.date().isoformat()}.{report_format}"


def snapshot_filename(route_id: str) -> str:
    return f"route_report_{route_id}.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportExporter:
    def __init__(
        self,
        storage: FileStorage,
        share_target: Optional[ShareTarget] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.storage = storage
        self.share_target = share_target
        self.clock = clock

    def export(self, route: Route, report_format: str = "csv") -> ExportResult:
        """Write the report and hand it to the share target.

        Without a usable share target the rendered content is returned to the
        caller instead. Write or share failures raise ``ExportError`` carrying
        the content.
        """
        if report_format not in MIME_TYPES:
            raise ValidationError(f"Unsupported report format '{report_format}'")
        content = route_to_report(route)

        if self.share_target is None or not self.share_target.is_available():
            logger.warning(f"Sharing not available; returning report for route {route.route_id} inline")
            return ExportResult(success=False, message="Sharing not available", content=content)

        filename = report_filename(route, report_format, self.clock())
        try:
            path = self.storage.report_path(filename)
            self.storage.write_csv(path, content)
        except (OSError, ValueError) as exc:
            raise ExportError(f"Could not write report {filename}: {exc}", content=content) from exc

        try:
            shared_to = self.share_target.share(path, MIME_TYPES[report_format])
        except OSError as exc:
            raise ExportError(f"Could not share report {filename}: {exc}", content=content) from exc

        logger.info(f"Exported report for route {route.route_id} to {shared_to}")
        return ExportResult(
            success=True,
            message="Report exported successfully",
            content=content,
            path=path,
            shared_to=shared_to,
        )

    def save_locally(self, route: Route) -> Path:
        """Store a JSON snapshot of ``route`` for offline viewing."""
        record: dict[str, Any] = route_to_record(route)
        record["savedAt"] = format_timestamp(self.clock())
        try:
            path = self.storage.report_path(snapshot_filename(route.route_id))
            self.storage.write_json(path, record)
        except (OSError, ValueError) as exc:
            raise ExportError(f"Could not save report for route {route.route_id}: {exc}") from exc
        return path

    def load_saved_report(self, route_id: str) -> Optional[dict[str, Any]]:
        """Return the saved snapshot, or None when there is none or it is unreadable."""
        try:
            path = self.storage.report_path(snapshot_filename(route_id))
            return self.storage.read_json(path)
        except (CollectionError, OSError, ValueError) as exc:
            logger.warning(f"Could not load saved report for route {route_id}: {exc}")
            return None
