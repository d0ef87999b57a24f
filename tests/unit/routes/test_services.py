"""Unit tests for RouteService.

Covers:
- Route creation and stop editing while ``publicado``.
- Starting a route generates one pending delivery per stop, in stop order.
- Completion eligibility, deactivation and reset.
- Audit trail and outbox events for every lifecycle change.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from django.contrib.auth.models import AnonymousUser
from django.utils import timezone
from freezegun import freeze_time

from modules.core.constants import ActorRole
from modules.core.models import OutboxEvent
from modules.deliveries.constants import DeliveryStatus, FailureReason
from modules.deliveries.models import Delivery
from modules.routes.constants import RouteStatus
from modules.routes.dtos import CreateRouteDTO, StopDTO
from modules.routes.exceptions import (
    AlreadyStarted,
    DeliveriesPending,
    DuplicateStop,
    EmptyRoute,
    InvalidStopOrder,
    NoDeliveriesGenerated,
    OrderAlreadyRouted,
    ResetNotAllowed,
    RouteLocked,
    RouteNotFound,
    StopNotFound,
)
from modules.routes.models import Route, RouteStatusHistory
from modules.routes.reconciliation import WarningKind
from shared.domain.exceptions import DomainValidationError

pytestmark = pytest.mark.unit


def _deliver_all(deliveries):
    Delivery.objects.filter(id__in=[d.id for d in deliveries]).update(
        status=DeliveryStatus.DELIVERED
    )


# ---------------------------------------------------------------------------
# Creation and stops
# ---------------------------------------------------------------------------


class TestCreateRoute:
    def test_created_route_is_published(self, make_route):
        route = make_route(stops=3)

        assert route.status == RouteStatus.PUBLISHED
        assert route.generation == 0
        assert route.stop_count == 3
        assert [stop.position for stop in route.ordered_stops] == [1, 2, 3]

    def test_records_creation_history(self, make_route):
        route = make_route()
        record = RouteStatusHistory.objects.get(route=route)

        assert record.old_status is None
        assert record.new_status == RouteStatus.PUBLISHED
        assert record.actor_role == ActorRole.SUPERVISOR

    def test_order_stop_takes_client_from_order(self, route_service, make_order):
        order = make_order()
        route = route_service.create_route(
            CreateRouteDTO(zone_id=3, stops=[StopDTO(order_id=order.id)]),
            actor_role=ActorRole.SUPERVISOR,
        )
        stop = route.ordered_stops[0]

        assert stop.order_id == order.id
        assert stop.client_id == order.client_id

    def test_order_stop_with_other_client_rejected(self, route_service, make_order):
        order = make_order()
        with pytest.raises(DomainValidationError):
            route_service.create_route(
                CreateRouteDTO(
                    zone_id=3, stops=[StopDTO(order_id=order.id, client_id=uuid4())]
                ),
                actor_role=ActorRole.SUPERVISOR,
            )
        assert Route.objects.count() == 0


class TestStopEditing:
    def test_add_stop_goes_last(self, route_service, make_route):
        route = make_route(stops=2)
        stop = route_service.add_stop(str(route.id), StopDTO(client_id=uuid4()))

        assert stop.position == 3
        assert stop.insertion_index == 3

    def test_add_stop_with_explicit_position(self, route_service, make_route):
        route = make_route(stops=2)
        stop = route_service.add_stop(str(route.id), StopDTO(client_id=uuid4(), position=1))
        ordered = route_service.get_route(str(route.id)).ordered_stops

        assert ordered[0].client_id != stop.client_id
        assert ordered[1].id == stop.id

    def test_same_order_twice_in_route(self, route_service, make_route, make_order):
        route = make_route(stops=0)
        order = make_order()
        route_service.add_stop(str(route.id), StopDTO(order_id=order.id))

        with pytest.raises(DuplicateStop):
            route_service.add_stop(str(route.id), StopDTO(order_id=order.id))

    def test_order_already_in_another_open_route(self, route_service, make_route, make_order):
        order = make_order()
        first, second = make_route(stops=0), make_route(stops=0)
        route_service.add_stop(str(first.id), StopDTO(order_id=order.id))

        with pytest.raises(OrderAlreadyRouted):
            route_service.add_stop(str(second.id), StopDTO(order_id=order.id))

    def test_order_of_cancelled_route_can_be_routed_again(
        self, route_service, make_route, make_order
    ):
        order = make_order()
        first, second = make_route(stops=0), make_route(stops=0)
        route_service.add_stop(str(first.id), StopDTO(order_id=order.id))
        route_service.deactivate_route(str(first.id), actor_role=ActorRole.SUPERVISOR)

        stop = route_service.add_stop(str(second.id), StopDTO(order_id=order.id))
        assert stop.order_id == order.id

    def test_remove_stop(self, route_service, make_route):
        route = make_route(stops=2)
        stop = route.ordered_stops[0]

        route = route_service.remove_stop(str(route.id), str(stop.id))

        assert route.stop_count == 1
        assert stop.id not in [s.id for s in route.ordered_stops]

    def test_remove_unknown_stop(self, route_service, make_route):
        route = make_route(stops=1)
        with pytest.raises(StopNotFound):
            route_service.remove_stop(str(route.id), str(uuid4()))

    def test_reorder_stops(self, route_service, make_route):
        route = make_route(stops=3)
        reversed_ids = [stop.id for stop in reversed(route.ordered_stops)]

        route = route_service.reorder_stops(str(route.id), reversed_ids)

        assert [stop.id for stop in route.ordered_stops] == reversed_ids
        assert [stop.position for stop in route.ordered_stops] == [1, 2, 3]

    def test_partial_reorder_rejected(self, route_service, make_route):
        route = make_route(stops=3)
        with pytest.raises(InvalidStopOrder):
            route_service.reorder_stops(str(route.id), [route.ordered_stops[0].id])

    def test_stops_locked_after_start(self, route_service, started_route):
        route, _ = started_route
        with pytest.raises(RouteLocked):
            route_service.add_stop(str(route.id), StopDTO(client_id=uuid4()))
        with pytest.raises(RouteLocked):
            route_service.remove_stop(str(route.id), str(route.ordered_stops[0].id))
        with pytest.raises(RouteLocked):
            route_service.reorder_stops(
                str(route.id), [stop.id for stop in route.ordered_stops]
            )
        with pytest.raises(RouteLocked):
            route_service.prepare_stop(str(route.id), str(route.ordered_stops[0].id))
        with pytest.raises(RouteLocked):
            route_service.update_vehicle(str(route.id), uuid4())


class TestPrepareStop:
    @freeze_time("2026-06-15 08:30:00")
    def test_records_time_and_preparer(self, route_service, make_route, user):
        route = make_route(stops=2)
        stop = route.ordered_stops[0]

        prepared = route_service.prepare_stop(str(route.id), str(stop.id), user=user)

        assert prepared.prepared_at == timezone.now()
        assert prepared.prepared_by == user
        other = route_service.get_route(str(route.id)).ordered_stops[1]
        assert other.prepared_at is None

    def test_preparing_twice_keeps_first_record(self, route_service, make_route, user):
        route = make_route(stops=1)
        stop = route.ordered_stops[0]
        first = route_service.prepare_stop(str(route.id), str(stop.id), user=user)

        again = route_service.prepare_stop(str(route.id), str(stop.id))

        assert again.prepared_at == first.prepared_at
        assert again.prepared_by == user

    def test_anonymous_preparer_not_recorded(self, route_service, make_route):
        route = make_route(stops=1)
        stop = route_service.prepare_stop(
            str(route.id), str(route.ordered_stops[0].id), user=AnonymousUser()
        )
        assert stop.prepared_at is not None
        assert stop.prepared_by is None

    def test_stop_of_another_route(self, route_service, make_route):
        route = make_route(stops=1)
        other = make_route(stops=1)
        with pytest.raises(StopNotFound):
            route_service.prepare_stop(str(route.id), str(other.ordered_stops[0].id))

    def test_cancelled_route_is_locked(self, route_service, make_route):
        route = make_route(stops=1)
        route_service.deactivate_route(str(route.id), actor_role=ActorRole.SUPERVISOR)
        with pytest.raises(RouteLocked):
            route_service.prepare_stop(str(route.id), str(route.ordered_stops[0].id))


class TestUpdateVehicle:
    def test_assigns_vehicle(self, route_service, make_route):
        route = make_route(stops=1)
        vehicle_id = uuid4()

        route = route_service.update_vehicle(str(route.id), vehicle_id)

        assert route.vehicle_id == vehicle_id
        assert Route.objects.get(id=route.id).vehicle_id == vehicle_id

    def test_clears_vehicle(self, route_service, make_route):
        route = make_route(stops=1)
        route_service.update_vehicle(str(route.id), uuid4())

        route = route_service.update_vehicle(str(route.id), None)

        assert route.vehicle_id is None
        assert route.status == RouteStatus.PUBLISHED

    def test_unknown_route(self, route_service):
        with pytest.raises(RouteNotFound):
            route_service.update_vehicle(str(uuid4()), uuid4())


# ---------------------------------------------------------------------------
# Start
# ---------------------------------------------------------------------------


class TestStartRoute:
    def test_generates_one_pending_delivery_per_stop(self, route_service, make_route):
        route = make_route(stops=3)
        route, deliveries = route_service.start_route(str(route.id), ActorRole.DRIVER)

        assert route.status == RouteStatus.IN_PROGRESS
        assert route.generation == 1
        assert route.started_at is not None
        assert len(deliveries) == 3
        assert all(d.status == DeliveryStatus.PENDING for d in deliveries)
        assert [d.stop_id for d in deliveries] == [s.id for s in route.ordered_stops]
        assert [d.position for d in deliveries] == [1, 2, 3]
        assert all(d.generation == 1 for d in deliveries)

    def test_delivery_windows_follow_visit_order(self, route_service, make_route):
        route_service._window_minutes = 20
        route = make_route(stops=2)
        _, deliveries = route_service.start_route(str(route.id), ActorRole.DRIVER)

        assert deliveries[0].window_end == deliveries[1].window_start
        assert (deliveries[0].window_end - deliveries[0].window_start).total_seconds() == 1200

    def test_delivery_carries_order_item_count(self, route_service, make_order):
        from decimal import Decimal

        order = make_order(lines=[(2, Decimal("1.00")), (3, Decimal("1.00"))])
        route = route_service.create_route(
            CreateRouteDTO(zone_id=1, stops=[StopDTO(order_id=order.id)]),
            actor_role=ActorRole.SUPERVISOR,
        )
        _, deliveries = route_service.start_route(str(route.id), ActorRole.DRIVER)

        assert deliveries[0].order_id == order.id
        assert deliveries[0].item_count == 5

    def test_empty_route_stays_published(self, route_service, make_route):
        route = make_route(stops=0)
        with pytest.raises(EmptyRoute):
            route_service.start_route(str(route.id), ActorRole.DRIVER)

        route.refresh_from_db()
        assert route.status == RouteStatus.PUBLISHED
        assert route.generation == 0
        assert Delivery.objects.count() == 0

    def test_cannot_start_twice(self, route_service, started_route):
        route, _ = started_route
        with pytest.raises(AlreadyStarted):
            route_service.start_route(str(route.id), ActorRole.DRIVER)
        assert Delivery.objects.filter(route=route).count() == 2

    def test_unknown_route(self, route_service):
        with pytest.raises(RouteNotFound):
            route_service.start_route(str(uuid4()), ActorRole.DRIVER)

    def test_writes_route_started_event(self, route_service, started_route):
        route, _ = started_route
        event = OutboxEvent.objects.get(event_type="RouteStarted", aggregate_id=str(route.id))

        assert event.topic == "routes"
        assert event.payload["generation"] == 1
        assert event.payload["delivery_count"] == 2

    def test_stop_order_stable_across_reads(self, route_service, started_route):
        route, _ = started_route
        again = route_service.get_route(str(route.id))
        assert [s.id for s in again.ordered_stops] == [s.id for s in route.ordered_stops]


# ---------------------------------------------------------------------------
# Complete
# ---------------------------------------------------------------------------


class TestCompleteRoute:
    def test_pending_deliveries_block_completion(self, route_service, started_route):
        route, _ = started_route
        eligibility = route_service.eligibility(str(route.id))

        assert eligibility.can_complete is False
        assert eligibility.warning.kind == WarningKind.PENDING_DELIVERIES
        assert eligibility.warning.count == 2
        with pytest.raises(DeliveriesPending):
            route_service.complete_route(str(route.id), ActorRole.DRIVER)

    def test_completes_when_all_resolved(self, route_service, started_route):
        route, deliveries = started_route
        _deliver_all(deliveries)

        assert route_service.eligibility(str(route.id)).can_complete is True
        route = route_service.complete_route(str(route.id), ActorRole.DRIVER)

        assert route.status == RouteStatus.COMPLETED
        assert route.completed_at is not None
        event = OutboxEvent.objects.get(event_type="RouteCompleted")
        assert event.payload["delivered_count"] == 2
        assert event.payload["failed_count"] == 0

    def test_failed_delivery_does_not_block(self, route_service, started_route):
        route, deliveries = started_route
        Delivery.objects.filter(id=deliveries[0].id).update(
            status=DeliveryStatus.FAILED, failure_reason=FailureReason.CLIENT_ABSENT
        )
        Delivery.objects.filter(id=deliveries[1].id).update(status=DeliveryStatus.DELIVERED)

        route = route_service.complete_route(str(route.id), ActorRole.DRIVER)
        assert route.status == RouteStatus.COMPLETED

    def test_generation_failure_blocks(self, route_service, make_route):
        route = make_route(stops=1)
        Route.objects.filter(id=route.id).update(
            status=RouteStatus.IN_PROGRESS, generation=1
        )

        with pytest.raises(NoDeliveriesGenerated):
            route_service.complete_route(str(route.id), ActorRole.DRIVER)

    def test_completed_route_is_locked(self, route_service, started_route):
        route, deliveries = started_route
        _deliver_all(deliveries)
        route_service.complete_route(str(route.id), ActorRole.DRIVER)

        with pytest.raises(RouteLocked):
            route_service.complete_route(str(route.id), ActorRole.DRIVER)
        with pytest.raises(RouteLocked):
            route_service.deactivate_route(str(route.id), ActorRole.SUPERVISOR)


# ---------------------------------------------------------------------------
# Deactivate and reset
# ---------------------------------------------------------------------------


class TestDeactivateRoute:
    def test_published_route(self, route_service, make_route):
        route = make_route()
        route = route_service.deactivate_route(
            str(route.id), ActorRole.SUPERVISOR, reason="vehicle broke down"
        )

        assert route.status == RouteStatus.CANCELLED
        assert route.cancel_reason == "vehicle broke down"
        assert route.cancelled_at is not None

    def test_in_progress_route_aborts_open_deliveries(self, route_service, started_route):
        route, deliveries = started_route
        Delivery.objects.filter(id=deliveries[0].id).update(status=DeliveryStatus.DELIVERED)

        route_service.deactivate_route(str(route.id), ActorRole.SUPERVISOR, reason="storm")

        first, second = Delivery.objects.filter(route=route).order_by("position")
        assert first.status == DeliveryStatus.DELIVERED
        assert second.status == DeliveryStatus.FAILED
        assert second.failure_reason == FailureReason.ROUTE_ABORTED
        assert second.resolved_at is not None
        event = OutboxEvent.objects.get(event_type="RouteCancelled")
        assert event.payload["aborted_deliveries"] == 1

    def test_history_tracks_every_change(self, route_service, started_route, user):
        route, _ = started_route
        route_service.deactivate_route(str(route.id), ActorRole.SUPERVISOR, user=user)
        history = route_service.get_history(str(route.id))

        assert [record.new_status for record in history] == [
            RouteStatus.CANCELLED,
            RouteStatus.IN_PROGRESS,
            RouteStatus.PUBLISHED,
        ]
        assert history[0].user == user
        assert history[1].actor_role == ActorRole.DRIVER


class TestResetRoute:
    def test_reset_after_failed_generation(self, route_service, make_route):
        route = make_route(stops=2)
        Route.objects.filter(id=route.id).update(
            status=RouteStatus.IN_PROGRESS, generation=1
        )

        route = route_service.reset_route(str(route.id), ActorRole.SUPERVISOR)
        assert route.status == RouteStatus.PUBLISHED
        assert route.generation == 1

        route, deliveries = route_service.start_route(str(route.id), ActorRole.DRIVER)
        assert route.generation == 2
        assert {d.generation for d in deliveries} == {2}
        assert route_service.get_deliveries(str(route.id)) == deliveries

    def test_reset_with_deliveries_rejected(self, route_service, started_route):
        route, _ = started_route
        with pytest.raises(ResetNotAllowed):
            route_service.reset_route(str(route.id), ActorRole.SUPERVISOR)
