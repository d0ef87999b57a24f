"""Route service layer (Use Cases).

``RouteService`` is the single authority for route status.  Every command
locks the route row first; starting a route creates its stops' deliveries
in the same transaction, so a client only ever observes a route together
with its complete delivery list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.deliveries.constants import DeliveryStatus
from modules.orders.exceptions import OrderNotFound
from modules.routes.constants import RouteStatus
from modules.routes.events import RouteCancelled, RouteCompleted, RouteReset, RouteStarted
from modules.routes.exceptions import (
    DuplicateStop,
    OrderAlreadyRouted,
    RouteNotFound,
    StopNotFound,
)
from modules.routes.reconciliation import Eligibility, evaluate
from modules.routes.state_machine import (
    ensure_can_complete,
    ensure_can_deactivate,
    ensure_can_reset,
    ensure_can_start,
    ensure_complete_reorder,
    ensure_editable,
    plan_deliveries,
)
from shared.domain.exceptions import DomainValidationError

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery
    from modules.deliveries.repositories.interfaces import IDeliveryRepository
    from modules.deliveries.services import DeliveryService
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.routes.dtos import CreateRouteDTO, StopDTO
    from modules.routes.models import Route, RouteStatusHistory, Stop
    from modules.routes.repositories.interfaces import IRouteRepository

logger = structlog.get_logger(__name__)


class RouteService:
    """Application service for Route use-cases."""

    def __init__(
        self,
        route_repository: IRouteRepository,
        delivery_repository: IDeliveryRepository,
        order_repository: IOrderRepository,
        delivery_service: DeliveryService,
        window_minutes: Optional[int] = None,
    ) -> None:
        self._route_repo = route_repository
        self._delivery_repo = delivery_repository
        self._order_repo = order_repository
        self._delivery_service = delivery_service
        self._window_minutes = window_minutes

    @property
    def window_minutes(self) -> int:
        if self._window_minutes is not None:
            return self._window_minutes
        return int(settings.DELIVERY_WINDOW_MINUTES)

    # ------------------------------------------------------------------
    # Creation and stop editing
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_route(
        self, dto: CreateRouteDTO, actor_role: str, user: Any = None
    ) -> Route:
        route = self._route_repo.create(
            {
                "name": dto.name,
                "zone_id": dto.zone_id,
                "driver_id": dto.driver_id,
                "vehicle_id": dto.vehicle_id,
                "scheduled_date": dto.scheduled_date,
                "frequency": dto.frequency,
                "day_of_week": dto.day_of_week or "",
            }
        )
        for stop_dto in dto.stops:
            self._add_stop(route, stop_dto)

        self._route_repo.add_history(
            route_id=route.id,
            status=RouteStatus.PUBLISHED,
            actor_role=actor_role,
            notes="Route created",
            user=user,
        )
        logger.info("route.created", route_id=str(route.id), stop_count=len(dto.stops))
        return self.get_route(str(route.id))

    @transaction.atomic
    def add_stop(self, route_id: str, dto: StopDTO) -> Stop:
        """Raises RouteLocked, DuplicateStop, OrderAlreadyRouted, OrderNotFound."""
        route = self._lock(route_id)
        ensure_editable(route.status)
        stop = self._add_stop(route, dto)
        logger.info("route.stop_added", route_id=str(route.id), stop_id=str(stop.id))
        return stop

    @transaction.atomic
    def remove_stop(self, route_id: str, stop_id: str) -> Route:
        route = self._lock(route_id)
        ensure_editable(route.status)
        stop = self._route_repo.get_stop(route.id, stop_id)
        if not stop:
            raise StopNotFound(f"Stop {stop_id} not found in route {route_id}.")
        self._route_repo.delete_stop(stop)
        logger.info("route.stop_removed", route_id=str(route.id), stop_id=str(stop_id))
        return self.get_route(str(route.id))

    @transaction.atomic
    def reorder_stops(self, route_id: str, stop_ids: Sequence[Any]) -> Route:
        """Make *stop_ids* the new visit order (positions ``1..n``).

        Raises:
            RouteLocked: the route is no longer ``publicado``.
            InvalidStopOrder: *stop_ids* is not exactly the route's stops.
        """
        route = self._lock(route_id)
        ensure_editable(route.status)
        ensure_complete_reorder([stop.id for stop in route.stops.all()], stop_ids)
        positions = {str(stop_id): index for index, stop_id in enumerate(stop_ids, start=1)}
        self._route_repo.update_positions(route, positions)
        logger.info("route.stops_reordered", route_id=str(route.id))
        return self.get_route(str(route.id))

    @transaction.atomic
    def prepare_stop(self, route_id: str, stop_id: str, user: Any = None) -> Stop:
        """Mark a stop's load as prepared at the warehouse.

        Preparing an already prepared stop keeps the first timestamp and
        preparer.

        Raises:
            RouteLocked: the route is no longer ``publicado``.
            StopNotFound: the stop is not part of the route.
        """
        route = self._lock(route_id)
        ensure_editable(route.status)
        stop = self._route_repo.get_stop(route.id, stop_id)
        if not stop:
            raise StopNotFound(f"Stop {stop_id} not found in route {route_id}.")
        if stop.prepared_at is not None:
            return stop

        stop.prepared_at = timezone.now()
        stop.prepared_by = user if getattr(user, "is_authenticated", False) else None
        self._route_repo.save_stop(stop, ["prepared_at", "prepared_by", "updated_at"])
        logger.info("route.stop_prepared", route_id=str(route.id), stop_id=str(stop.id))
        return stop

    @transaction.atomic
    def update_vehicle(self, route_id: str, vehicle_id: Any) -> Route:
        """Assign (or clear, with ``None``) the route's vehicle while ``publicado``."""
        route = self._lock(route_id)
        ensure_editable(route.status)
        route.vehicle_id = vehicle_id
        self._route_repo.save(route)
        logger.info(
            "route.vehicle_updated",
            route_id=str(route.id),
            vehicle_id=str(vehicle_id) if vehicle_id else None,
        )
        return self.get_route(str(route.id))

    def _add_stop(self, route: Route, dto: StopDTO) -> Stop:
        client_id = dto.client_id
        if dto.order_id is not None:
            order = self._order_repo.get_by_id(str(dto.order_id))
            if not order:
                raise OrderNotFound(f"Order {dto.order_id} not found.")
            if client_id is None:
                client_id = order.client_id
            elif str(client_id) != str(order.client_id):
                raise DomainValidationError(
                    "Stop client does not match the order client.",
                    order_id=str(dto.order_id),
                )
            if any(str(stop.order_id) == str(dto.order_id) for stop in route.stops.all()):
                raise DuplicateStop(order_id=str(dto.order_id))
            if self._route_repo.order_routed_elsewhere(dto.order_id, route.id):
                raise OrderAlreadyRouted(order_id=str(dto.order_id))

        stop = self._route_repo.add_stop(
            route,
            {
                "client_id": client_id,
                "order_id": dto.order_id,
                "position": dto.position,
                "notes": dto.notes,
            },
        )
        return stop

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @transaction.atomic
    def start_route(
        self, route_id: str, actor_role: str, user: Any = None
    ) -> Tuple[Route, List[Delivery]]:
        """Start a published route and generate one pending delivery per stop.

        Raises:
            RouteNotFound: route does not exist.
            AlreadyStarted: route is not ``publicado``.
            EmptyRoute: route has no stops (status is left unchanged).
        """
        route = self._lock(route_id)
        stops = list(route.stops.select_related("order").prefetch_related("order__items"))
        log = logger.bind(route_id=str(route.id), stop_count=len(stops))
        ensure_can_start(route.status, len(stops))

        now = timezone.now()
        old_status = route.status
        route.status = RouteStatus.IN_PROGRESS
        route.generation += 1
        route.started_at = now

        deliveries = self._delivery_repo.create_many(
            [
                {
                    "route": route,
                    "stop": plan.stop,
                    "order": plan.stop.order,
                    "generation": route.generation,
                    "position": plan.position,
                    "window_start": plan.window_start,
                    "window_end": plan.window_end,
                    "item_count": plan.stop.order.item_count if plan.stop.order else 0,
                }
                for plan in plan_deliveries(stops, now, self.window_minutes)
            ]
        )

        route.add_domain_event(
            RouteStarted(
                aggregate_id=route.id,
                generation=route.generation,
                delivery_count=len(deliveries),
            )
        )
        self._route_repo.save(route)
        self._route_repo.add_history(
            route_id=route.id,
            status=route.status,
            actor_role=actor_role,
            old_status=old_status,
            notes=f"Generation {route.generation}: {len(deliveries)} deliveries",
            user=user,
        )

        log.info("route.started", generation=route.generation, deliveries=len(deliveries))
        return self.get_route(str(route.id)), deliveries

    @transaction.atomic
    def complete_route(self, route_id: str, actor_role: str, user: Any = None) -> Route:
        """Close an in-progress route whose deliveries are all resolved.

        Raises:
            RouteLocked: route is already terminal.
            InvalidTransition: route was never started.
            NoDeliveriesGenerated: the current start produced no deliveries.
            DeliveriesPending: some deliveries are pending or in transit.
        """
        route = self._lock(route_id)
        deliveries = self._delivery_repo.for_route(route.id, route.generation)
        statuses = [delivery.status for delivery in deliveries]
        ensure_can_complete(route.status, statuses)

        old_status = route.status
        route.status = RouteStatus.COMPLETED
        route.completed_at = timezone.now()
        route.add_domain_event(
            RouteCompleted(
                aggregate_id=route.id,
                generation=route.generation,
                delivered_count=statuses.count(DeliveryStatus.DELIVERED),
                failed_count=statuses.count(DeliveryStatus.FAILED),
            )
        )
        self._route_repo.save(route)
        self._route_repo.add_history(
            route_id=route.id,
            status=route.status,
            actor_role=actor_role,
            old_status=old_status,
            user=user,
        )

        logger.info("route.completed", route_id=str(route.id), deliveries=len(statuses))
        return self.get_route(str(route.id))

    @transaction.atomic
    def deactivate_route(
        self, route_id: str, actor_role: str, reason: str = "", user: Any = None
    ) -> Route:
        """Cancel a non-terminal route.

        In ``en_curso`` every unresolved delivery is failed with
        ``ruta_abortada``.
        """
        route = self._lock(route_id)
        ensure_can_deactivate(route.status)

        old_status = route.status
        route.cancel_reason = reason
        aborted: List[Delivery] = []
        if old_status == RouteStatus.IN_PROGRESS:
            aborted = self._delivery_service.abort_route_deliveries(route)

        route.status = RouteStatus.CANCELLED
        route.cancelled_at = timezone.now()
        route.add_domain_event(
            RouteCancelled(
                aggregate_id=route.id, reason=reason, aborted_deliveries=len(aborted)
            )
        )
        self._route_repo.save(route)
        self._route_repo.add_history(
            route_id=route.id,
            status=route.status,
            actor_role=actor_role,
            old_status=old_status,
            notes=reason,
            user=user,
        )

        logger.info("route.deactivated", route_id=str(route.id), aborted=len(aborted))
        return self.get_route(str(route.id))

    @transaction.atomic
    def reset_route(self, route_id: str, actor_role: str, user: Any = None) -> Route:
        """Return an in-progress route without deliveries to ``publicado``.

        The route is never restarted here; the operator starts it again,
        which produces a new generation.
        """
        route = self._lock(route_id)
        deliveries = self._delivery_repo.for_route(route.id, route.generation)
        ensure_can_reset(route.status, len(deliveries))

        old_status = route.status
        route.status = RouteStatus.PUBLISHED
        route.started_at = None
        route.add_domain_event(RouteReset(aggregate_id=route.id, generation=route.generation))
        self._route_repo.save(route)
        self._route_repo.add_history(
            route_id=route.id,
            status=route.status,
            actor_role=actor_role,
            old_status=old_status,
            notes=f"Reset after generation {route.generation}",
            user=user,
        )

        logger.warning("route.reset", route_id=str(route.id), generation=route.generation)
        return self.get_route(str(route.id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_route(self, route_id: str) -> Route:
        route = self._route_repo.get_by_id(str(route_id))
        if not route:
            raise RouteNotFound(f"Route {route_id} not found.")
        return route

    def list_routes(self, filters: Optional[Dict[str, Any]] = None):
        return self._route_repo.list(filters)

    def get_deliveries(self, route_id: str) -> List[Delivery]:
        route = self.get_route(route_id)
        return self._delivery_repo.for_route(route.id, route.generation)

    def eligibility(self, route_id: str) -> Eligibility:
        route = self.get_route(route_id)
        deliveries = self._delivery_repo.for_route(route.id, route.generation)
        return evaluate(route, deliveries)

    def get_history(self, route_id: str) -> List[RouteStatusHistory]:
        route = self.get_route(route_id)
        return self._route_repo.history(route.id)

    def _lock(self, route_id: str) -> Route:
        route = self._route_repo.get_for_update(str(route_id))
        if not route:
            raise RouteNotFound(f"Route {route_id} not found.")
        return route
