"""Pure order transition rules (no ORM access).

Shared by ``OrderService`` on the server and by the API client, which runs
the same check before sending a request.
"""

from __future__ import annotations

from typing import Optional

from modules.orders.constants import (
    MAIN_CHAIN,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from modules.orders.exceptions import InvalidTransition, OrderLocked


def next_in_chain(current: str) -> Optional[OrderStatus]:
    """Return the main-chain successor of *current* (``None`` at the end)."""
    if current not in MAIN_CHAIN:
        return None
    index = MAIN_CHAIN.index(current)
    if index + 1 >= len(MAIN_CHAIN):
        return None
    return OrderStatus(MAIN_CHAIN[index + 1])


def validate_transition(current: str, target: str) -> OrderStatus:
    """Check that an order in *current* may move to *target*.

    Raises:
        OrderLocked: *current* is terminal.
        InvalidTransition: *target* is unknown, skips a chain step, goes
            backwards or repeats the current status.
    """
    if current in TERMINAL_STATES:
        raise OrderLocked(f"Order in status {current} cannot be changed.")

    try:
        target_status = OrderStatus(target)
    except ValueError:
        raise InvalidTransition("order", current, target) from None

    if target_status not in VALID_TRANSITIONS.get(current, set()):
        raise InvalidTransition("order", current, target_status)
    return target_status
