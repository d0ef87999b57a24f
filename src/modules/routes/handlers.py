"""Event handlers for Routes domain events."""

from __future__ import annotations

import structlog

from modules.routes.events import RouteCancelled, RouteCompleted, RouteReset, RouteStarted
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class RouteStartedHandler(IEventHandler[RouteStarted]):
    def handle(self, event: RouteStarted) -> None:
        logger.info(
            "route.event.started",
            route_id=str(event.aggregate_id),
            generation=event.generation,
            delivery_count=event.delivery_count,
        )


class RouteCompletedHandler(IEventHandler[RouteCompleted]):
    def handle(self, event: RouteCompleted) -> None:
        logger.info(
            "route.event.completed",
            route_id=str(event.aggregate_id),
            delivered=event.delivered_count,
            failed=event.failed_count,
        )


class RouteCancelledHandler(IEventHandler[RouteCancelled]):
    def handle(self, event: RouteCancelled) -> None:
        logger.info(
            "route.event.cancelled",
            route_id=str(event.aggregate_id),
            aborted_deliveries=event.aborted_deliveries,
        )


class RouteResetHandler(IEventHandler[RouteReset]):
    def handle(self, event: RouteReset) -> None:
        logger.warning(
            "route.event.reset",
            route_id=str(event.aggregate_id),
            generation=event.generation,
        )


route_started_handler = RouteStartedHandler()
route_completed_handler = RouteCompletedHandler()
route_cancelled_handler = RouteCancelledHandler()
route_reset_handler = RouteResetHandler()
