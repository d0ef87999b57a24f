"""Route completion eligibility.

``evaluate`` derives whether a route may be completed, and which warning
to show, from the route and its current deliveries.  It is pure and
deterministic: the same inputs always yield an equal result, so callers
may re-run it on every poll.

``route`` needs ``status`` and ``stop_count``; each delivery needs
``status``.  Both Django models and the sync snapshots qualify.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from modules.routes.constants import RouteStatus
from modules.routes.state_machine import pending_count


class WarningKind(str, enum.Enum):
    NO_STOPS = "no_stops"
    NOT_STARTED = "not_started"
    PENDING_DELIVERIES = "pending_deliveries"
    GENERATION_FAILED = "generation_failed"


_MESSAGES = {
    WarningKind.NO_STOPS: "Add at least one stop before starting the route.",
    WarningKind.NOT_STARTED: "Start the route to generate its deliveries.",
    WarningKind.PENDING_DELIVERIES: "{count} deliveries are still pending.",
    WarningKind.GENERATION_FAILED: (
        "No deliveries were generated for this route; reset it and start again."
    ),
}


@dataclass(frozen=True)
class RouteWarning:
    kind: WarningKind
    count: Optional[int] = None

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind].format(count=self.count)


@dataclass(frozen=True)
class Eligibility:
    can_complete: bool
    pending_count: int
    warning: Optional[RouteWarning] = None


def evaluate(route: Any, deliveries: Sequence[Any]) -> Eligibility:
    statuses = [delivery.status for delivery in deliveries]
    pending = pending_count(statuses)
    warning: Optional[RouteWarning] = None

    if route.status == RouteStatus.PUBLISHED:
        if route.stop_count == 0:
            warning = RouteWarning(WarningKind.NO_STOPS)
        else:
            warning = RouteWarning(WarningKind.NOT_STARTED)
    elif route.status == RouteStatus.IN_PROGRESS:
        if not statuses:
            warning = RouteWarning(WarningKind.GENERATION_FAILED)
        elif pending:
            warning = RouteWarning(WarningKind.PENDING_DELIVERIES, count=pending)

    can_complete = (
        route.status == RouteStatus.IN_PROGRESS and bool(statuses) and pending == 0
    )
    return Eligibility(can_complete=can_complete, pending_count=pending, warning=warning)
