"""Django ORM implementation of the Delivery repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.outbox import record_domain_events
from modules.deliveries.constants import TERMINAL_STATES
from modules.deliveries.models import Delivery
from modules.deliveries.repositories.interfaces import IDeliveryRepository

logger = structlog.get_logger(__name__)


class DeliveryDjangoRepository(IDeliveryRepository):
    """Concrete Delivery repository backed by Django ORM."""

    @transaction.atomic
    def create_many(self, rows: Sequence[Dict[str, Any]]) -> List[Delivery]:
        """Bulk insert one start's deliveries, returned in visit order."""
        deliveries = Delivery.objects.bulk_create([Delivery(**row) for row in rows])
        return sorted(deliveries, key=lambda delivery: delivery.position)

    def get_by_id(self, id: str) -> Optional[Delivery]:
        """Return the delivery with its route, or ``None`` for unknown or malformed ids."""
        try:
            return Delivery.objects.select_related("route").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Delivery]:
        """Lock the delivery row for the rest of the transaction."""
        try:
            return Delivery.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Queryset for the list endpoint, optionally filtered."""
        queryset = Delivery.objects.select_related("route")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def for_route(self, route_id: Any, generation: int) -> List[Delivery]:
        """Deliveries produced by one start of the route, by position."""
        return list(
            Delivery.objects.filter(route_id=route_id, generation=generation).order_by(
                "position"
            )
        )

    def unresolved_for_update(self, route_id: Any, generation: int) -> List[Delivery]:
        """Lock the still pending or in-transit deliveries of one start."""
        return list(
            Delivery.objects.select_for_update()
            .filter(route_id=route_id, generation=generation)
            .exclude(status__in=TERMINAL_STATES)
            .order_by("position")
        )

    @transaction.atomic
    def save(self, entity: Delivery) -> Delivery:
        """Persist the delivery and move its pending domain events to the outbox."""
        entity.save()
        event_count = record_domain_events(entity, topic="deliveries")
        logger.info(
            "delivery.saved", delivery_id=str(entity.id), event_count=event_count
        )
        return entity
