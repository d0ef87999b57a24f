"""Pull reconciliation of a single route.

``RouteTracker.refresh()`` re-fetches the route and its current
deliveries and re-evaluates completion eligibility.  The newest fetch
always replaces the previous snapshot ("last fetch wins"); when the
backend fails the previous snapshot is kept and the error recorded.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple, Union
from uuid import UUID

import structlog

from modules.routes.reconciliation import Eligibility, evaluate
from modules.sync.client import DistributionApiClient
from modules.sync.exceptions import BackendError
from modules.sync.snapshots import DeliverySnapshot, RouteSnapshot

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TrackerState:
    route: Optional[RouteSnapshot] = None
    deliveries: Tuple[DeliverySnapshot, ...] = ()
    eligibility: Optional[Eligibility] = None
    fetched_at: Optional[float] = None
    error: Optional[BackendError] = None

    @property
    def is_stale(self) -> bool:
        return self.error is not None


class RouteTracker:
    def __init__(
        self,
        client: DistributionApiClient,
        route_id: Union[str, UUID],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self.route_id = str(route_id)
        self._clock = clock
        self._state = TrackerState()
        self._lock = threading.Lock()

    @property
    def state(self) -> TrackerState:
        return self._state

    def refresh(self) -> TrackerState:
        log = logger.bind(route_id=self.route_id)
        try:
            route = self._client.get_route(self.route_id)
            deliveries = tuple(self._client.get_deliveries(self.route_id))
        except BackendError as exc:
            log.warning("sync.refresh_failed", status_code=exc.status_code, code=exc.code)
            with self._lock:
                self._state = replace(self._state, error=exc)
                return self._state

        state = TrackerState(
            route=route,
            deliveries=deliveries,
            eligibility=evaluate(route, deliveries),
            fetched_at=self._clock(),
        )
        with self._lock:
            self._state = state
        log.debug(
            "sync.refreshed",
            status=route.status,
            pending=state.eligibility.pending_count,
        )
        return state
