"""HTTP client for the collection REST backend."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import settings
from ..data.records import bin_changes_to_record, bin_from_record, route_from_record
from ..errors import ConflictError, NotFoundError, TransportError, ValidationError
from ..models.domain import Bin, Route
from .gateway import RouteAction

logger = logging.getLogger(__name__)


class HttpCollectionGateway:
    """Speaks the backend's ``/bins`` and ``/routes`` endpoints.

    Failures are translated into the core's error types and never retried
    here; retry belongs to the caller or to the offline queue replay.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.backend_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Collection backend base URL is not configured.")
        self.token = token if token is not None else settings.backend_token
        self.timeout = timeout if timeout is not None else settings.backend_timeout_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(self.timeout, connect=5.0),
            transport=self._transport,
        )

    def _request(self, method: str, path: str, *, params: dict | None = None, json: Any = None) -> Any:
        if params:
            params = {key: value for key, value in params.items() if value is not None}
        with self._get_client() as client:
            try:
                response = client.request(method, path, params=params or None, json=json)
            except httpx.TimeoutException as exc:
                logger.warning(f"Backend request {method} {path} timed out: {exc}")
                raise TransportError(f"Collection backend timed out on {method} {path}") from exc
            except httpx.HTTPError as exc:
                logger.warning(f"Backend request {method} {path} failed: {exc}")
                raise TransportError(f"Failed to reach collection backend at {self.base_url}: {exc}") from exc

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as exc:
                raise TransportError(f"Collection backend returned invalid JSON for {method} {path}") from exc

        message = _error_message(response)
        if response.status_code in (400, 422):
            raise ValidationError(message)
        if response.status_code == 404:
            raise NotFoundError(message)
        if response.status_code == 409:
            raise ConflictError(message)
        raise TransportError(f"Collection backend error {response.status_code}: {message}")

    # Bins ---------------------------------------------------------------

    def fetch_bins(self, status: Optional[str] = None, category: Optional[str] = None) -> list[Bin]:
        payload = self._request("GET", "/bins", params={"status": status, "binType": category})
        return [bin_from_record(item) for item in _unwrap_list(payload, "bins")]

    def create_bin(self, payload: dict[str, Any]) -> Bin:
        response = self._request("POST", "/bins", json=payload)
        return bin_from_record(_unwrap_record(response, "bin"))

    def update_bin(self, bin_: Bin, changes: dict[str, Any]) -> Bin:
        response = self._request("PUT", f"/bins/{bin_.record_id}", json=bin_changes_to_record(changes))
        return bin_from_record(_unwrap_record(response, "bin"))

    def delete_bin(self, bin_: Bin) -> None:
        self._request("DELETE", f"/bins/{bin_.record_id}")

    # Routes -------------------------------------------------------------

    def fetch_routes(self, status: Optional[str] = None) -> list[Route]:
        payload = self._request("GET", "/routes", params={"status": status})
        return [route_from_record(item) for item in _unwrap_list(payload, "routes")]

    def fetch_my_routes(self, collector_id: str, status: Optional[str] = None) -> list[Route]:
        # The backend resolves the collector from the bearer token.
        payload = self._request("GET", "/routes/my-routes", params={"status": status})
        return [route_from_record(item) for item in _unwrap_list(payload, "routes")]

    def create_route(self, payload: dict[str, Any]) -> Route:
        assigned = payload.get("assignedTo")
        if isinstance(assigned, dict):
            # The backend takes the collector id and populates the rest.
            payload = {**payload, "assignedTo": assigned.get("_id")}
        response = self._request("POST", "/routes", json=payload)
        return route_from_record(_unwrap_record(response, "route"))

    def apply_route_action(self, action: RouteAction, proposed: Route) -> Route:
        route_path = f"/routes/{action.route_id}"
        bin_key = action.bin_record_id or action.bin_id
        if action.kind == "start":
            response = self._request("PUT", f"{route_path}/start", json=action.payload)
        elif action.kind == "collect":
            response = self._request("PUT", f"{route_path}/bins/{bin_key}/collect", json=action.payload)
        elif action.kind == "skip":
            response = self._request("PUT", f"{route_path}/bins/{bin_key}/skip", json=action.payload)
        elif action.kind == "complete":
            response = self._request("PUT", f"{route_path}/complete")
        elif action.kind == "cancel":
            response = self._request("PUT", route_path, json={"status": "cancelled"})
        elif action.kind == "assign":
            response = self._request("PUT", f"{route_path}/assign", json=action.payload)
        else:
            raise ValueError(f"Unsupported route action '{action.kind}'")
        return route_from_record(_unwrap_record(response, "route"))

    def fetch_route_stats(self) -> dict[str, int]:
        payload = self._request("GET", "/routes/stats")
        stats = _unwrap_record(payload, "stats")
        return {str(key): int(value) for key, value in stats.items()}


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _unwrap_list(payload: Any, key: str) -> list[dict]:
    data = _unwrap(payload)
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise TransportError(f"Collection backend returned an unexpected {key} payload")
    return data


def _unwrap_record(payload: Any, key: str) -> dict:
    data = _unwrap(payload)
    if isinstance(data, dict) and isinstance(data.get(key), dict):
        data = data[key]
    if not isinstance(data, dict):
        raise TransportError(f"Collection backend returned an unexpected {key} payload")
    return data


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)
