"""Domain events for the Deliveries bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class DeliveryStatusChanged(DomainEvent):
    """Raised when a driver (or the system) marks a delivery."""

    route_id: str = ""
    old_status: str = ""
    new_status: str = ""
    failure_reason: str = ""
    actor_role: str = ""
