"""Event handlers for Deliveries domain events."""

from __future__ import annotations

import structlog

from modules.deliveries.events import DeliveryStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class DeliveryStatusChangedHandler(IEventHandler[DeliveryStatusChanged]):
    def handle(self, event: DeliveryStatusChanged) -> None:
        logger.info(
            "delivery.event.status_changed",
            delivery_id=str(event.aggregate_id),
            route_id=event.route_id,
            old_status=event.old_status,
            new_status=event.new_status,
            failure_reason=event.failure_reason or None,
        )


delivery_status_changed_handler = DeliveryStatusChangedHandler()
