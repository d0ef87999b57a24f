"""Django ORM implementation of the Order repository.

Write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems) and its outbox events are persisted
together.  Status changes lock the row with ``select_for_update()``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.outbox import record_domain_events
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def _base_queryset(self) -> QuerySet:
        return Order.objects.alive().prefetch_related("items")

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            client_id=data["client_id"],
            payment_condition=data["payment_condition"],
            subtotal=data["subtotal"],
            discount_total=data["discount_total"],
            tax_total=data["tax_total"],
            total=data["total"],
            idempotency_key=data.get("idempotency_key"),
            notes=data.get("notes", ""),
        )
        order.save()

        items = data.get("items", [])
        for item_data in items:
            OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
                final_price=item_data.get("final_price"),
            ).save()

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    def get_by_id(self, id: str) -> Optional[Order]:
        """Return ``None`` for non-existent or malformed IDs."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return Order.objects.alive().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        entity.save()
        event_count = record_domain_events(entity, topic="orders")
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        status: str,
        actor_role: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
    ) -> OrderStatusHistory:
        return OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            actor_role=actor_role,
            user=user if getattr(user, "is_authenticated", False) else None,
            notes=notes,
        )

    def history(self, order_id: UUID) -> List[OrderStatusHistory]:
        return list(
            OrderStatusHistory.objects.filter(order_id=order_id)
            .select_related("user")
            .order_by("-created_at", "-id")
        )

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._base_queryset().filter(idempotency_key=key).first()

