"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the Order
aggregate: atomic creation with items, status history and idempotency-key
look-up.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderItem children and OrderStatusHistory
    records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``client_id``, ``payment_condition``, the
        computed amounts and ``items`` (dicts with ``product_id``,
        ``quantity``, ``unit_price``, ``final_price``).
        """

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Any:
        """Return a queryset of live orders, optionally filtered."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        actor_role: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def history(self, order_id: UUID) -> List[OrderStatusHistory]:
        """Return the audit trail of an order, newest first."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
