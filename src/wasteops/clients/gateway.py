"""Request/response contract with the remote store that owns durable state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol

from ..models.domain import Bin, Route

RouteActionKind = Literal["start", "collect", "skip", "complete", "cancel", "assign"]


@dataclass(slots=True)
class RouteAction:
    """A lifecycle mutation sent to the collaborator.

    ``payload`` holds the action arguments in wire form (``preRouteChecklist``,
    ``actualWeight``, ``reason``, ``collectorId``).
    """

    kind: RouteActionKind
    route_id: str
    bin_id: Optional[str] = None
    bin_record_id: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)


class CollectionGateway(Protocol):
    """Operations the lifecycle core needs from the remote collaborator.

    Implementations raise ``TransportError`` for network/storage failures and
    may raise ``ValidationError``/``ConflictError``/``NotFoundError`` when the
    collaborator rejects a request.
    """

    def fetch_bins(self, status: Optional[str] = None, category: Optional[str] = None) -> list[Bin]: ...

    def create_bin(self, payload: dict[str, Any]) -> Bin: ...

    def update_bin(self, bin_: Bin, changes: dict[str, Any]) -> Bin: ...

    def delete_bin(self, bin_: Bin) -> None: ...

    def fetch_routes(self, status: Optional[str] = None) -> list[Route]: ...

    def fetch_my_routes(self, collector_id: str, status: Optional[str] = None) -> list[Route]: ...

    def create_route(self, payload: dict[str, Any]) -> Route: ...

    def apply_route_action(self, action: RouteAction, proposed: Route) -> Route:
        """Persist ``action`` and return the collaborator's view of the route.

        ``proposed`` is the route as the lifecycle core expects it after the
        action; stores without their own state machine write it as-is.
        """
        ...

    def fetch_route_stats(self) -> dict[str, int]: ...
