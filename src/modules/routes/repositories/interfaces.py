"""Route repository interface.

The Route aggregate includes its Stops and RouteStatusHistory records.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.routes.models import Route, RouteStatusHistory, Stop


class IRouteRepository(IRepository["Route"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Route:
        """Create a route in ``publicado`` (without stops)."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Any:
        """Return a queryset of live routes, optionally filtered."""

    @abstractmethod
    def add_stop(self, route: Route, data: Dict[str, Any]) -> Stop:
        """Append a stop, assigning the next ``insertion_index``."""

    @abstractmethod
    def get_stop(self, route_id: Any, stop_id: str) -> Optional[Stop]:
        """Retrieve a stop of the given route."""

    @abstractmethod
    def delete_stop(self, stop: Stop) -> None:
        """Remove a stop from its route."""

    @abstractmethod
    def save_stop(self, stop: Stop, fields: List[str]) -> Stop:
        """Persist the given columns of a stop."""

    @abstractmethod
    def update_positions(self, route: Route, positions: Dict[str, int]) -> None:
        """Set ``position`` for each stop id of the route."""

    @abstractmethod
    def order_routed_elsewhere(self, order_id: Any, exclude_route_id: Any = None) -> bool:
        """Whether the order is a stop of another open route."""

    @abstractmethod
    def add_history(
        self,
        route_id: Any,
        status: str,
        actor_role: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
    ) -> RouteStatusHistory:
        """Record a status change in the route's audit trail."""

    @abstractmethod
    def history(self, route_id: Any) -> List[RouteStatusHistory]:
        """Return the audit trail of a route, newest first."""
