"""Order domain exceptions.

Raised by the state machine and the service layer; rendered by
``modules.core.exceptions.standard_exception_handler``.
"""

from __future__ import annotations

from shared.domain.exceptions import (
    DomainValidationError,
    InvalidTransition,
    InvariantViolation,
    NotFound,
)

__all__ = [
    "InvalidOrderAmount",
    "InvalidTransition",
    "OrderLocked",
    "OrderNotFound",
]


class OrderNotFound(NotFound):
    """The requested order does not exist or has been soft-deleted."""

    code = "order_not_found"


class OrderLocked(InvariantViolation):
    """The order is in a terminal state and accepts no further changes."""

    code = "order_locked"


class InvalidOrderAmount(DomainValidationError):
    """Order amounts are negative or the final total would drop below zero."""

    code = "invalid_order_amount"
