"""Django ORM implementation of the Route repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max, QuerySet
from django.utils import timezone

from modules.core.outbox import record_domain_events
from modules.routes.constants import OPEN_STATES
from modules.routes.models import Route, RouteStatusHistory, Stop
from modules.routes.repositories.interfaces import IRouteRepository

logger = structlog.get_logger(__name__)


class RouteDjangoRepository(IRouteRepository):
    """Concrete Route repository backed by Django ORM."""

    def _base_queryset(self) -> QuerySet:
        """Live routes with their stops prefetched."""
        return Route.objects.alive().prefetch_related("stops")

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Route:
        """Insert a route row; stops are added separately."""
        route = Route.objects.create(**data)
        logger.info("route.persisted", route_id=str(route.id))
        return route

    def get_by_id(self, id: str) -> Optional[Route]:
        """Return the live route or ``None`` (also for malformed ids)."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Route]:
        """Lock the route row for the rest of the transaction."""
        try:
            return Route.objects.alive().select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Queryset for the list endpoint, optionally filtered."""
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Route) -> Route:
        """Persist the route and move its pending domain events to the outbox."""
        entity.save()
        event_count = record_domain_events(entity, topic="routes")
        logger.info("route.saved", route_id=str(entity.id), event_count=event_count)
        return entity

    # ------------------------------------------------------------------
    # Stops
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_stop(self, route: Route, data: Dict[str, Any]) -> Stop:
        """Append a stop; without a position it goes after the last one."""
        last = Stop.objects.filter(route=route).aggregate(
            last_index=Max("insertion_index"), last_position=Max("position")
        )
        next_index = (last["last_index"] or 0) + 1
        position = data.get("position") or (last["last_position"] or 0) + 1
        return Stop.objects.create(
            route=route,
            client_id=data["client_id"],
            order_id=data.get("order_id"),
            position=position,
            insertion_index=next_index,
            notes=data.get("notes", ""),
        )

    def get_stop(self, route_id: Any, stop_id: str) -> Optional[Stop]:
        """Stop of the given route, or ``None``."""
        try:
            return Stop.objects.filter(route_id=route_id, id=stop_id).first()
        except (ValueError, ValidationError):
            return None

    @transaction.atomic
    def delete_stop(self, stop: Stop) -> None:
        """Hard delete; stops have no soft delete."""
        stop.delete()

    @transaction.atomic
    def save_stop(self, stop: Stop, fields: List[str]) -> Stop:
        """Persist the given stop columns."""
        stop.save(update_fields=fields)
        return stop

    @transaction.atomic
    def update_positions(self, route: Route, positions: Dict[str, int]) -> None:
        """Rewrite every stop position in one bulk update."""
        now = timezone.now()
        stops = list(Stop.objects.filter(route=route))
        for stop in stops:
            stop.position = positions[str(stop.id)]
            stop.updated_at = now
        Stop.objects.bulk_update(stops, ["position", "updated_at"])

    def order_routed_elsewhere(self, order_id: Any, exclude_route_id: Any = None) -> bool:
        """Whether *order_id* is a stop of another open, live route."""
        queryset = Stop.objects.filter(
            order_id=order_id,
            route__status__in=OPEN_STATES,
            route__deleted_at__isnull=True,
        )
        if exclude_route_id is not None:
            queryset = queryset.exclude(route_id=exclude_route_id)
        return queryset.exists()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        route_id: Any,
        status: str,
        actor_role: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user: Any = None,
    ) -> RouteStatusHistory:
        """Append an audit entry; anonymous users are stored as ``None``."""
        return RouteStatusHistory.objects.create(
            route_id=route_id,
            old_status=old_status,
            new_status=status,
            actor_role=actor_role,
            user=user if getattr(user, "is_authenticated", False) else None,
            notes=notes,
        )

    def history(self, route_id: Any) -> List[RouteStatusHistory]:
        """Audit trail, newest first; ties broken by id."""
        return list(
            RouteStatusHistory.objects.filter(route_id=route_id)
            .select_related("user")
            .order_by("-created_at", "-id")
        )
