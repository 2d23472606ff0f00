"""File-based persistence helpers for report snapshots and queued mutations."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from ..config import settings
from ..errors import TransportError


class FileStorage:
    """Thin wrapper around the data root for storing JSON and CSV files locally."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.reports_root = self.root / "reports"
        self.state_root = self.root / "state"
        self.reports_root.mkdir(parents=True, exist_ok=True)
        self.state_root.mkdir(parents=True, exist_ok=True)

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Readers only ever see a complete file.
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)
        os.replace(tmp_path, path)

    def read_json(self, path: Path) -> Any | None:
        """Return the decoded file, or None when it does not exist."""
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except json.JSONDecodeError as exc:
            raise TransportError(f"Corrupt local file {path.name}: {exc}") from exc

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(content)

    def report_path(self, filename: str) -> Path:
        candidate = (self.reports_root / filename).resolve()
        if self.reports_root not in candidate.parents:
            raise ValueError(f"Invalid report file name '{filename}'")
        return candidate

    def state_path(self, filename: str) -> Path:
        return self.state_root / filename
