"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="WASTEOPS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Waste Collection Route Coordinator"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for local reports and queues.")
    log_level: str = Field(default="INFO", description="Root logging level.")

    backend: Literal["http", "supabase"] = Field(
        default="http",
        description="Remote collaborator that owns durable bin and route state.",
    )
    backend_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the collection REST backend (e.g., http://localhost:5000/api).",
    )
    backend_token: Optional[str] = Field(default=None, description="Bearer token sent to the REST backend.")
    backend_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    auto_start_reset_scheduler: bool = True
    reset_poll_interval_seconds: float = Field(default=60.0, gt=0.0)
    reset_fill_level: float = Field(default=85.0, ge=0.0, le=100.0)
    reset_weight_ratio: float = Field(default=0.85, ge=0.0)
    minutes_per_bin: float = Field(
        default=15.0,
        ge=0.0,
        description="Minutes assumed per remaining bin when estimating completion time.",
    )
    report_export_dir: Optional[Path] = Field(
        default=None,
        description="Directory reports are shared to. Export falls back to inline content when unset.",
    )
    checklist_items: tuple[str, ...] = Field(
        default=(
            "vehicle:Vehicle inspection completed",
            "safety:Safety equipment available",
            "containers:Collection containers ready",
            "route:Route map reviewed",
            "communication:Communication device functional",
        ),
        description="Pre-route checklist entries as `id:label`.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", "report_export_dir", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", "checklist_items", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            # Try comma-separated
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            # Single value
            if value.strip():
                return (value.strip(),)
        # Return empty tuple if value is None or empty
        return tuple()

    def checklist_definitions(self) -> list[tuple[str, str]]:
        """Split `id:label` entries; entries without a label reuse the id."""
        definitions: list[tuple[str, str]] = []
        for entry in self.checklist_items:
            item_id, _, label = entry.partition(":")
            item_id = item_id.strip()
            if not item_id:
                continue
            definitions.append((item_id, label.strip() or item_id))
        return definitions


settings = Settings()
