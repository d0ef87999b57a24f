"""Delivery service layer.

The driver marks deliveries one at a time; the system fails every
unresolved delivery of a route when that route is deactivated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.constants import ActorRole
from modules.deliveries.constants import DeliveryStatus, FailureReason
from modules.deliveries.events import DeliveryStatusChanged
from modules.deliveries.exceptions import DeliveryNotFound
from modules.deliveries.state_machine import validate_transition
from modules.routes.models import Route
from shared.domain.exceptions import DomainError

if TYPE_CHECKING:
    from modules.deliveries.models import Delivery
    from modules.deliveries.repositories.interfaces import IDeliveryRepository

logger = structlog.get_logger(__name__)


class DeliveryService:
    def __init__(self, delivery_repository: IDeliveryRepository) -> None:
        self._delivery_repo = delivery_repository

    @transaction.atomic
    def mark_delivery(
        self,
        delivery_id: str,
        status: str,
        evidence: Optional[str] = None,
        reason: Optional[str] = None,
        notes: str = "",
        actor_role: str = ActorRole.DRIVER,
    ) -> Delivery:
        """Apply a driver mark to a delivery.

        Locks the owning route before the delivery (the same order
        ``RouteService`` uses) so a mark cannot interleave with a route
        completion or deactivation.

        Raises:
            DeliveryNotFound: delivery does not exist.
            RouteNotActive: the owning route is not in progress.
            DeliveryLocked: the delivery is already resolved.
            InvalidTransition: *status* is not a legal successor.
            EvidenceRequired / ReasonRequired: missing payload.
        """
        found = self._delivery_repo.get_by_id(str(delivery_id))
        if not found:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        route = Route.objects.select_for_update().get(id=found.route_id)
        delivery = self._delivery_repo.get_for_update(str(delivery_id))

        log = logger.bind(
            delivery_id=str(delivery.id),
            route_id=str(route.id),
            current_status=delivery.status,
            new_status=status,
        )
        try:
            target = validate_transition(
                delivery.status, status, route.status, evidence=evidence, reason=reason
            )
        except DomainError as exc:
            log.warning("delivery.mark_rejected", error_code=exc.code)
            raise

        old_status = delivery.status
        self._apply(delivery, target, evidence=evidence, reason=reason, notes=notes)
        delivery.add_domain_event(
            DeliveryStatusChanged(
                aggregate_id=delivery.id,
                route_id=str(route.id),
                old_status=old_status,
                new_status=target.value,
                failure_reason=delivery.failure_reason,
                actor_role=str(actor_role),
            )
        )
        self._delivery_repo.save(delivery)
        delivery.route = route

        log.info("delivery.marked")
        return delivery

    @transaction.atomic
    def abort_route_deliveries(self, route: Route) -> List[Delivery]:
        """Fail every unresolved delivery of the route's current generation.

        Must be called with the route row already locked.
        """
        aborted = self._delivery_repo.unresolved_for_update(route.id, route.generation)
        for delivery in aborted:
            old_status = delivery.status
            self._apply(
                delivery,
                DeliveryStatus.FAILED,
                reason=FailureReason.ROUTE_ABORTED,
                notes=route.cancel_reason,
            )
            delivery.add_domain_event(
                DeliveryStatusChanged(
                    aggregate_id=delivery.id,
                    route_id=str(route.id),
                    old_status=old_status,
                    new_status=DeliveryStatus.FAILED.value,
                    failure_reason=FailureReason.ROUTE_ABORTED.value,
                    actor_role=ActorRole.SYSTEM.value,
                )
            )
            self._delivery_repo.save(delivery)

        logger.info(
            "delivery.route_aborted", route_id=str(route.id), aborted=len(aborted)
        )
        return aborted

    def get_delivery(self, delivery_id: str) -> Delivery:
        delivery = self._delivery_repo.get_by_id(str(delivery_id))
        if not delivery:
            raise DeliveryNotFound(f"Delivery {delivery_id} not found.")
        return delivery

    def list_deliveries(self, filters: Optional[Dict[str, Any]] = None):
        return self._delivery_repo.list(filters)

    @staticmethod
    def _apply(
        delivery: Delivery,
        target: str,
        evidence: Optional[str] = None,
        reason: Optional[str] = None,
        notes: str = "",
    ) -> None:
        now = timezone.now()
        delivery.status = target
        if target == DeliveryStatus.IN_TRANSIT:
            delivery.in_transit_at = now
        elif target == DeliveryStatus.DELIVERED:
            delivery.evidence_ref = (evidence or "").strip()
            delivery.resolved_at = now
        elif target == DeliveryStatus.FAILED:
            delivery.failure_reason = reason or ""
            delivery.resolved_at = now
        if notes:
            delivery.notes = notes
