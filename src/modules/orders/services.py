"""Order service layer (Use Cases).

The service is the single authority for order status.  All write
operations are atomic and lock the order row before validating the
transition.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, NamedTuple, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.core.constants import ActorRole
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCreated, OrderStatusChanged
from modules.orders.exceptions import OrderNotFound
from modules.orders.pricing import PricedLine, calculate_totals
from modules.orders.state_machine import validate_transition
from shared.domain.exceptions import DomainError

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order, OrderStatusHistory
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderCreation(NamedTuple):
    order: Order
    created: bool


class OrderService:
    """Application service for Order use-cases."""

    def __init__(
        self,
        order_repository: IOrderRepository,
        tax_rate: Optional[Decimal] = None,
    ) -> None:
        self._order_repo = order_repository
        self._tax_rate = tax_rate

    @property
    def tax_rate(self) -> Decimal:
        if self._tax_rate is not None:
            return self._tax_rate
        return Decimal(settings.ORDER_TAX_RATE)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(
        self,
        dto: CreateOrderDTO,
        actor_role: str = ActorRole.CLIENT,
        user: Any = None,
    ) -> OrderCreation:
        """Create an order in ``PENDIENTE`` from priced cart lines.

        A request carrying an ``idempotency_key`` that was already used
        returns the existing order with ``created=False``.

        Raises:
            InvalidOrderAmount: negative amounts or a discount larger than
                the subtotal.
        """
        log = logger.bind(client_id=str(dto.client_id))
        log.info("order.creation_started")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return OrderCreation(existing, False)

        totals = calculate_totals(
            [
                PricedLine(
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    final_price=line.final_price,
                )
                for line in dto.items
            ],
            discount_total=dto.discount_total,
            tax_rate=self.tax_rate,
        )

        order = self._order_repo.create(
            {
                "client_id": dto.client_id,
                "payment_condition": dto.payment_condition,
                "subtotal": totals.subtotal,
                "discount_total": totals.discount_total,
                "tax_total": totals.tax_total,
                "total": totals.total,
                "items": [line.model_dump() for line in dto.items],
                "notes": dto.notes or "",
                "idempotency_key": dto.idempotency_key,
            }
        )
        order.add_domain_event(
            OrderCreated(
                aggregate_id=order.id,
                client_id=str(dto.client_id),
                total=str(totals.total),
            )
        )
        self._order_repo.save(order)

        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PENDING,
            actor_role=actor_role,
            notes="Order created",
            user=user,
        )

        log.info("order.created", order_id=str(order.id), total=str(totals.total))
        return OrderCreation(self._order_repo.get_by_id(str(order.id)) or order, True)

    @transaction.atomic
    def change_status(
        self,
        order_id: str,
        new_status: str,
        actor_role: str,
        notes: str = "",
        user: Any = None,
    ) -> Order:
        """Move an order to *new_status* and record who did it.

        Raises:
            OrderNotFound: order does not exist.
            OrderLocked: order is in a terminal state.
            InvalidTransition: *new_status* is not reachable.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order_id),
            current_status=order.status,
            new_status=new_status,
            actor_role=actor_role,
        )
        try:
            target = validate_transition(order.status, new_status)
        except DomainError:
            log.warning("order.invalid_transition")
            raise

        old_status = order.status
        order.status = target
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=str(old_status),
                new_status=target.value,
                actor_role=str(actor_role),
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=target,
            actor_role=actor_role,
            notes=notes,
            old_status=old_status,
            user=user,
        )

        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order_id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Raises ``OrderNotFound`` if the order does not exist."""
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None):
        return self._order_repo.list(filters)

    def get_history(self, order_id: str) -> List[OrderStatusHistory]:
        order = self.get_order(order_id)
        return self._order_repo.history(order.id)
