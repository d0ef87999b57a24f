"""Order domain constants.

Defines status choices and the order state machine: a single forward
chain ``PENDIENTE → … → ENTREGADO`` with ``ANULADO`` and ``RECHAZADO``
reachable as side exits from every non-terminal state.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDIENTE", "Pendiente"
    APPROVED = "APROBADO", "Aprobado"
    IN_PREPARATION = "EN_PREPARACION", "En preparación"
    INVOICED = "FACTURADO", "Facturado"
    ON_ROUTE = "EN_RUTA", "En ruta"
    DELIVERED = "ENTREGADO", "Entregado"
    CANCELLED = "ANULADO", "Anulado"
    REJECTED = "RECHAZADO", "Rechazado"


class PaymentCondition(models.TextChoices):
    CASH = "CONTADO", "Contado"
    CREDIT = "CREDITO", "Crédito"


MAIN_CHAIN: tuple[str, ...] = (
    OrderStatus.PENDING,
    OrderStatus.APPROVED,
    OrderStatus.IN_PREPARATION,
    OrderStatus.INVOICED,
    OrderStatus.ON_ROUTE,
    OrderStatus.DELIVERED,
)

EXIT_STATES: frozenset[str] = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED})

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REJECTED}
)

VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.APPROVED, *EXIT_STATES},
    OrderStatus.APPROVED: {OrderStatus.IN_PREPARATION, *EXIT_STATES},
    OrderStatus.IN_PREPARATION: {OrderStatus.INVOICED, *EXIT_STATES},
    OrderStatus.INVOICED: {OrderStatus.ON_ROUTE, *EXIT_STATES},
    OrderStatus.ON_ROUTE: {OrderStatus.DELIVERED, *EXIT_STATES},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.REJECTED: set(),
}

ORDER_NUMBER_MAX_RETRIES = 5
