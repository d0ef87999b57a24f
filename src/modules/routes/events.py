"""Domain events for the Routes bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class RouteStarted(DomainEvent):
    generation: int = 0
    delivery_count: int = 0


@dataclass(frozen=True)
class RouteCompleted(DomainEvent):
    """Raised when every delivery of a route is resolved and it is closed.

    Consumers may use it as the signal that the routed orders should be
    delivered or closed; the order service is not updated automatically.
    """

    generation: int = 0
    delivered_count: int = 0
    failed_count: int = 0


@dataclass(frozen=True)
class RouteCancelled(DomainEvent):
    reason: str = ""
    aborted_deliveries: int = 0


@dataclass(frozen=True)
class RouteReset(DomainEvent):
    generation: int = 0
