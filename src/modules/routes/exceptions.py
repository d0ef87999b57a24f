"""Route domain exceptions.

Raised by the pure route rules in ``state_machine`` and by
``RouteService``; rendered by ``standard_exception_handler``.
"""

from __future__ import annotations

from shared.domain.exceptions import (
    DomainValidationError,
    EligibilityGap,
    InvalidTransition,
    InvariantViolation,
    NotFound,
)

__all__ = [
    "AlreadyStarted",
    "DeliveriesPending",
    "DuplicateStop",
    "EmptyRoute",
    "InvalidStopOrder",
    "InvalidTransition",
    "NoDeliveriesGenerated",
    "OrderAlreadyRouted",
    "ResetNotAllowed",
    "RouteLocked",
    "RouteNotFound",
    "StopNotFound",
]


class RouteNotFound(NotFound):
    code = "route_not_found"


class StopNotFound(NotFound):
    code = "stop_not_found"


class EmptyRoute(InvariantViolation):
    """A route without stops cannot be started."""

    code = "empty_route"


class AlreadyStarted(InvariantViolation):
    """The route has already left the published state."""

    code = "already_started"


class RouteLocked(InvariantViolation):
    """The route no longer accepts this change."""

    code = "route_locked"


class DuplicateStop(InvariantViolation):
    """The order is already a stop of this route."""

    code = "duplicate_stop"


class OrderAlreadyRouted(InvariantViolation):
    """The order is already a stop of another open route."""

    code = "order_already_routed"


class ResetNotAllowed(InvariantViolation):
    """Only an in-progress route without deliveries can be reset."""

    code = "reset_not_allowed"


class InvalidStopOrder(DomainValidationError):
    """A reorder request must list every stop of the route exactly once."""

    code = "invalid_stop_order"


class NoDeliveriesGenerated(EligibilityGap):
    """The route is in progress but its start produced no deliveries."""

    code = "no_deliveries_generated"


class DeliveriesPending(EligibilityGap):
    """Some deliveries of the route are not resolved yet."""

    code = "deliveries_pending"

    def __init__(self, count: int) -> None:
        super().__init__(
            f"{count} deliveries are still pending or in transit.", pending_count=count
        )
        self.count = count
