"""Delivery domain constants.

A delivery moves ``pending → in_transit → {delivered | failed}`` and is
never revisited once it leaves a state.
"""

from django.db import models


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pendiente"
    IN_TRANSIT = "in_transit", "En tránsito"
    DELIVERED = "delivered", "Entregado"
    FAILED = "failed", "No entregado"


class FailureReason(models.TextChoices):
    CLIENT_ABSENT = "cliente_ausente", "Cliente ausente"
    WRONG_ADDRESS = "direccion_incorrecta", "Dirección incorrecta"
    REFUSED = "rechazado_por_cliente", "Rechazado por el cliente"
    DAMAGED = "producto_danado", "Producto dañado"
    OUT_OF_HOURS = "fuera_de_horario", "Fuera de horario"
    ROUTE_ABORTED = "ruta_abortada", "Ruta abortada"
    OTHER = "otro", "Otro"


TERMINAL_STATES: frozenset[str] = frozenset(
    {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}
)

VALID_TRANSITIONS: dict[str, set[str]] = {
    DeliveryStatus.PENDING: {DeliveryStatus.IN_TRANSIT},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.FAILED: set(),
}

EVIDENCE_REF_MAX_LENGTH = 255
