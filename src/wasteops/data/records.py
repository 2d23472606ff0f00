"""Conversion between remote collaborator records and domain models.

Records use the collection backend's camelCase document shape
(``_id``, ``binId``, ``fillLevel``, ``bins[].bin`` ...). Stops may carry
either a populated bin document or a bare bin id, in which case the bin is
resolved from ``bins_by_id``.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from ..errors import ValidationError
from ..models.domain import (
    BIN_STATUSES,
    ROUTE_STATUSES,
    STOP_STATUSES,
    WASTE_CATEGORIES,
    Bin,
    ChecklistItem,
    Collector,
    PreRouteChecklist,
    Route,
    RouteBinStop,
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds, as emitted by Date.now()
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"Invalid timestamp '{value}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        raise ValidationError("Scheduled date is required")
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValidationError(f"Invalid scheduled date '{value}'") from exc


def _number(value: Any, field_name: str, default: float | None = 0.0) -> Optional[float]:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a number") from exc
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite")
    return number


def _record_id(record: Mapping[str, Any]) -> str:
    identifier = record.get("_id") or record.get("id")
    if identifier is None:
        raise ValidationError("Record is missing its identifier")
    return str(identifier)


def validate_fill_level(value: float) -> float:
    if value < 0 or value > 100:
        raise ValidationError(f"Fill level must be between 0 and 100 (got {value})")
    return value


def validate_weight(value: float, field_name: str = "Weight") -> float:
    if value < 0:
        raise ValidationError(f"{field_name} must not be negative (got {value})")
    return value


def bin_from_record(record: Mapping[str, Any]) -> Bin:
    status = str(record.get("status") or "active")
    if status not in BIN_STATUSES:
        raise ValidationError(f"Unknown bin status '{status}'")
    category = str(record.get("binType") or "General Waste")
    if category not in WASTE_CATEGORIES:
        raise ValidationError(f"Unknown waste category '{category}'")
    record_id = _record_id(record)
    return Bin(
        record_id=record_id,
        bin_id=str(record.get("binId") or record_id),
        location=str(record.get("location") or ""),
        zone=str(record.get("zone") or ""),
        category=category,
        capacity=validate_weight(_number(record.get("capacity"), "Capacity"), "Capacity"),
        fill_level=validate_fill_level(_number(record.get("fillLevel"), "Fill level")),
        weight=validate_weight(_number(record.get("weight"), "Weight")),
        status=status,
        last_collection=parse_timestamp(record.get("lastCollection")),
        notes=record.get("notes"),
    )


def bin_to_record(bin_: Bin) -> dict[str, Any]:
    return {
        "_id": bin_.record_id,
        "binId": bin_.bin_id,
        "location": bin_.location,
        "zone": bin_.zone,
        "binType": bin_.category,
        "capacity": bin_.capacity,
        "fillLevel": bin_.fill_level,
        "weight": bin_.weight,
        "status": bin_.status,
        "lastCollection": format_timestamp(bin_.last_collection),
        "notes": bin_.notes,
    }


def bin_changes_to_record(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Translate domain field names in a partial update to record keys."""
    mapping = {
        "location": "location",
        "zone": "zone",
        "category": "binType",
        "capacity": "capacity",
        "fill_level": "fillLevel",
        "weight": "weight",
        "status": "status",
        "last_collection": "lastCollection",
        "notes": "notes",
    }
    payload: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in mapping:
            raise ValidationError(f"Unknown bin field '{key}'")
        payload[mapping[key]] = format_timestamp(value) if isinstance(value, datetime) else value
    return payload


def checklist_from_record(record: Mapping[str, Any] | None) -> Optional[PreRouteChecklist]:
    if not record:
        return None
    items = [
        ChecklistItem(
            item_id=str(item.get("id") or item.get("item_id") or ""),
            label=str(item.get("label") or ""),
            checked=item.get("checked") is True,
        )
        for item in record.get("items") or []
    ]
    return PreRouteChecklist(items=items, completed_at=parse_timestamp(record.get("completedAt")))


def checklist_to_record(checklist: PreRouteChecklist) -> dict[str, Any]:
    return {
        "completed": checklist.is_complete,
        "completedAt": format_timestamp(checklist.completed_at),
        "items": [{"id": item.item_id, "label": item.label, "checked": item.checked} for item in checklist.items],
    }


def _collector_from_record(value: Any) -> Optional[Collector]:
    if not value:
        return None
    if isinstance(value, Mapping):
        return Collector(
            collector_id=_record_id(value),
            first_name=str(value.get("firstName") or ""),
            last_name=str(value.get("lastName") or ""),
        )
    return Collector(collector_id=str(value))


def collector_to_record(collector: Optional[Collector]) -> Optional[dict[str, Any]]:
    if collector is None:
        return None
    return {"_id": collector.collector_id, "firstName": collector.first_name, "lastName": collector.last_name}


def _stop_bin(value: Any, bins_by_id: Mapping[str, Bin] | None) -> Bin:
    if isinstance(value, Mapping):
        return bin_from_record(value)
    key = str(value)
    if bins_by_id and key in bins_by_id:
        return bins_by_id[key]
    raise ValidationError(f"Route stop references unknown bin '{key}'")


def stop_from_record(record: Mapping[str, Any], bins_by_id: Mapping[str, Bin] | None = None) -> RouteBinStop:
    status = str(record.get("status") or "pending")
    if status not in STOP_STATUSES:
        raise ValidationError(f"Unknown stop status '{status}'")
    order = int(record.get("order") or 0)
    if order < 1:
        raise ValidationError("Stop order must be 1 or greater")
    bin_ = _stop_bin(record.get("bin"), bins_by_id)
    fill_level = _number(record.get("fillLevelAtCollection"), "Fill level at collection", default=None)
    actual_weight = _number(record.get("actualWeight"), "Actual weight", default=None)
    return RouteBinStop(
        bin=bin_,
        order=order,
        status=status,
        expected_weight=_number(record.get("expectedWeight"), "Expected weight", default=bin_.weight),
        actual_weight=validate_weight(actual_weight, "Actual weight") if actual_weight is not None else None,
        fill_level_at_collection=validate_fill_level(fill_level) if fill_level is not None else None,
        collected_at=parse_timestamp(record.get("collectedAt")),
        notes=record.get("notes"),
    )


def stop_to_record(stop: RouteBinStop) -> dict[str, Any]:
    return {
        "bin": bin_to_record(stop.bin),
        "order": stop.order,
        "status": stop.status,
        "expectedWeight": stop.expected_weight,
        "actualWeight": stop.actual_weight,
        "fillLevelAtCollection": stop.fill_level_at_collection,
        "collectedAt": format_timestamp(stop.collected_at),
        "notes": stop.notes,
    }


def route_from_record(record: Mapping[str, Any], bins_by_id: Mapping[str, Bin] | None = None) -> Route:
    status = str(record.get("status") or "scheduled")
    if status not in ROUTE_STATUSES:
        raise ValidationError(f"Unknown route status '{status}'")
    stops = [stop_from_record(item, bins_by_id) for item in record.get("bins") or []]
    return Route(
        route_id=_record_id(record),
        name=str(record.get("routeName") or ""),
        scheduled_date=_parse_date(record.get("scheduledDate")),
        scheduled_time=str(record.get("scheduledTime") or ""),
        stops=sorted(stops, key=lambda stop: stop.order),
        status=status,
        assigned_collector=_collector_from_record(record.get("assignedTo")),
        checklist=checklist_from_record(record.get("preRouteChecklist")),
        started_at=parse_timestamp(record.get("startedAt")),
        completed_at=parse_timestamp(record.get("completedAt")),
        waste_collected=_number(record.get("wasteCollected"), "Waste collected"),
        recyclable_waste=_number(record.get("recyclableWaste"), "Recyclable waste"),
        route_duration=int(_number(record.get("routeDuration"), "Route duration")),
        notes=record.get("notes"),
    )


def route_to_record(route: Route) -> dict[str, Any]:
    return {
        "_id": route.route_id,
        "routeName": route.name,
        "scheduledDate": route.scheduled_date.isoformat(),
        "scheduledTime": route.scheduled_time,
        "status": route.status,
        "assignedTo": collector_to_record(route.assigned_collector),
        "bins": [stop_to_record(stop) for stop in route.stops],
        "preRouteChecklist": checklist_to_record(route.checklist) if route.checklist else None,
        "startedAt": format_timestamp(route.started_at),
        "completedAt": format_timestamp(route.completed_at),
        "wasteCollected": route.waste_collected,
        "recyclableWaste": route.recyclable_waste,
        "routeDuration": route.route_duration,
        "notes": route.notes,
    }
