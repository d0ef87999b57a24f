"""Delivery repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery


class IDeliveryRepository(IRepository["Delivery"]):
    @abstractmethod
    def create_many(self, rows: Sequence[Dict[str, Any]]) -> List[Delivery]:
        """Insert the deliveries of one route start, returned in visit order."""

    @abstractmethod
    def for_route(self, route_id: Any, generation: int) -> List[Delivery]:
        """Deliveries of a route generation, in visit order."""

    @abstractmethod
    def unresolved_for_update(self, route_id: Any, generation: int) -> List[Delivery]:
        """Lock and return the non-terminal deliveries of a route generation."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Any:
        """Return a queryset of deliveries, optionally filtered."""
