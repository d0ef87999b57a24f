"""Unit tests for DeliveryService."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.core.constants import ActorRole
from modules.core.models import OutboxEvent
from modules.deliveries.constants import DeliveryStatus, FailureReason
from modules.deliveries.exceptions import (
    DeliveryLocked,
    DeliveryNotFound,
    EvidenceRequired,
    RouteNotActive,
)
from modules.deliveries.models import Delivery
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.services import DeliveryService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return DeliveryService(delivery_repository=DeliveryDjangoRepository())


@pytest.fixture()
def delivery(started_route):
    _, deliveries = started_route
    return deliveries[0]


class TestMarkDelivery:
    def test_in_transit_stamps_time(self, service, delivery):
        marked = service.mark_delivery(str(delivery.id), DeliveryStatus.IN_TRANSIT)

        assert marked.status == DeliveryStatus.IN_TRANSIT
        assert marked.in_transit_at is not None
        assert marked.resolved_at is None

    def test_delivered_stores_evidence(self, service, delivery):
        service.mark_delivery(str(delivery.id), DeliveryStatus.IN_TRANSIT)
        marked = service.mark_delivery(
            str(delivery.id), DeliveryStatus.DELIVERED, evidence=" firma-77.png "
        )

        marked.refresh_from_db()
        assert marked.status == DeliveryStatus.DELIVERED
        assert marked.evidence_ref == "firma-77.png"
        assert marked.resolved_at is not None

    def test_failed_stores_reason_and_notes(self, service, delivery):
        service.mark_delivery(str(delivery.id), DeliveryStatus.IN_TRANSIT)
        marked = service.mark_delivery(
            str(delivery.id),
            DeliveryStatus.FAILED,
            reason=FailureReason.WRONG_ADDRESS,
            notes="house number missing",
        )

        assert marked.failure_reason == FailureReason.WRONG_ADDRESS
        assert marked.notes == "house number missing"

    def test_writes_status_changed_event(self, service, delivery):
        service.mark_delivery(str(delivery.id), DeliveryStatus.IN_TRANSIT)
        event = OutboxEvent.objects.get(
            event_type="DeliveryStatusChanged", aggregate_id=str(delivery.id)
        )

        assert event.topic == "deliveries"
        assert event.payload["old_status"] == DeliveryStatus.PENDING
        assert event.payload["new_status"] == DeliveryStatus.IN_TRANSIT
        assert event.payload["route_id"] == str(delivery.route_id)
        assert event.payload["actor_role"] == ActorRole.DRIVER

    def test_rejected_mark_leaves_delivery_untouched(self, service, delivery):
        service.mark_delivery(str(delivery.id), DeliveryStatus.IN_TRANSIT)
        with pytest.raises(EvidenceRequired):
            service.mark_delivery(str(delivery.id), DeliveryStatus.DELIVERED)

        delivery.refresh_from_db()
        assert delivery.status == DeliveryStatus.IN_TRANSIT

    def test_resolved_delivery_is_locked(self, service, delivery):
        service.mark_delivery(str(delivery.id), DeliveryStatus.IN_TRANSIT)
        service.mark_delivery(str(delivery.id), DeliveryStatus.DELIVERED, evidence="sig")

        with pytest.raises(DeliveryLocked):
            service.mark_delivery(
                str(delivery.id), DeliveryStatus.FAILED, reason=FailureReason.OTHER
            )

    def test_route_must_be_in_progress(self, service, route_service, started_route):
        route, deliveries = started_route
        route_service.deactivate_route(str(route.id), ActorRole.SUPERVISOR)

        with pytest.raises(RouteNotActive):
            service.mark_delivery(str(deliveries[1].id), DeliveryStatus.IN_TRANSIT)

    def test_unknown_delivery(self, service):
        with pytest.raises(DeliveryNotFound):
            service.mark_delivery(str(uuid4()), DeliveryStatus.IN_TRANSIT)


class TestAbortRouteDeliveries:
    def test_fails_only_unresolved(self, service, started_route):
        route, deliveries = started_route
        Delivery.objects.filter(id=deliveries[0].id).update(status=DeliveryStatus.DELIVERED)

        aborted = service.abort_route_deliveries(route)

        assert [d.id for d in aborted] == [deliveries[1].id]
        assert aborted[0].status == DeliveryStatus.FAILED
        assert aborted[0].failure_reason == FailureReason.ROUTE_ABORTED
        event = OutboxEvent.objects.get(
            event_type="DeliveryStatusChanged", aggregate_id=str(deliveries[1].id)
        )
        assert event.payload["actor_role"] == ActorRole.SYSTEM
