"""Route completion report rendering and export."""

from .export import DirectoryShareTarget, ExportResult, ReportExporter, ShareTarget
from .generator import format_duration, route_to_report

__all__ = [
    "format_duration",
    "route_to_report",
    "ReportExporter",
    "ExportResult",
    "ShareTarget",
    "DirectoryShareTarget",
]
