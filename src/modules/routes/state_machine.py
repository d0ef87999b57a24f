"""Pure route lifecycle rules (no ORM access).

These guards are shared by ``RouteService`` and the API client so an
illegal route action is rejected before any write or network call.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Sequence

from modules.deliveries.constants import TERMINAL_STATES as DELIVERY_TERMINAL_STATES
from modules.routes.constants import TERMINAL_STATES, RouteStatus
from modules.routes.exceptions import (
    AlreadyStarted,
    DeliveriesPending,
    EmptyRoute,
    InvalidStopOrder,
    InvalidTransition,
    NoDeliveriesGenerated,
    ResetNotAllowed,
    RouteLocked,
)


def order_stops(stops: Iterable[Any]) -> List[Any]:
    """Return stops in visit order: by ``position``, ties by ``insertion_index``."""
    return sorted(stops, key=lambda stop: (stop.position, stop.insertion_index))


def pending_count(delivery_statuses: Iterable[str]) -> int:
    return sum(1 for status in delivery_statuses if status not in DELIVERY_TERMINAL_STATES)


def ensure_editable(status: str) -> None:
    if status != RouteStatus.PUBLISHED:
        raise RouteLocked(f"A route can only be edited while {RouteStatus.PUBLISHED}.")


def ensure_can_start(status: str, stop_count: int) -> None:
    if status != RouteStatus.PUBLISHED:
        raise AlreadyStarted(f"Route in status {status} cannot be started.")
    if stop_count == 0:
        raise EmptyRoute()


def ensure_can_complete(status: str, delivery_statuses: Sequence[str]) -> None:
    if status in TERMINAL_STATES:
        raise RouteLocked(f"Route in status {status} cannot be changed.")
    if status != RouteStatus.IN_PROGRESS:
        raise InvalidTransition("route", status, RouteStatus.COMPLETED)
    if len(delivery_statuses) == 0:
        raise NoDeliveriesGenerated()
    pending = pending_count(delivery_statuses)
    if pending:
        raise DeliveriesPending(pending)


def ensure_can_deactivate(status: str) -> None:
    if status in TERMINAL_STATES:
        raise RouteLocked(f"Route in status {status} cannot be changed.")


def ensure_can_reset(status: str, delivery_count: int) -> None:
    if status in TERMINAL_STATES:
        raise RouteLocked(f"Route in status {status} cannot be changed.")
    if status != RouteStatus.IN_PROGRESS:
        raise InvalidTransition("route", status, RouteStatus.PUBLISHED)
    if delivery_count:
        raise ResetNotAllowed(
            "Route already has deliveries for the current start.",
            delivery_count=delivery_count,
        )


def ensure_complete_reorder(current_ids: Iterable[Any], requested_ids: Sequence[Any]) -> None:
    current = {str(stop_id) for stop_id in current_ids}
    requested = [str(stop_id) for stop_id in requested_ids]
    if len(requested) != len(set(requested)) or set(requested) != current:
        raise InvalidStopOrder()


@dataclass(frozen=True)
class DeliveryPlan:
    stop: Any
    position: int
    window_start: datetime
    window_end: datetime


def plan_deliveries(
    stops: Iterable[Any], started_at: datetime, window_minutes: int
) -> List[DeliveryPlan]:
    """One plan per stop in visit order, with consecutive estimated windows."""
    window = timedelta(minutes=window_minutes)
    plans = []
    for index, stop in enumerate(order_stops(stops)):
        window_start = started_at + index * window
        plans.append(
            DeliveryPlan(
                stop=stop,
                position=index + 1,
                window_start=window_start,
                window_end=window_start + window,
            )
        )
    return plans
