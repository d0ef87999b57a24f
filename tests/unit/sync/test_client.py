"""Unit tests for the distribution API client.

The backend is replaced by ``httpx.MockTransport``; every test records the
requests it receives so local guards can be shown to send nothing.
"""

from __future__ import annotations

import json
from decimal import Decimal
from uuid import uuid4

import httpx
import pytest

from modules.deliveries.exceptions import EvidenceRequired, EvidenceTooLong, RouteNotActive
from modules.orders.exceptions import InvalidOrderAmount, InvalidTransition, OrderLocked
from modules.routes.exceptions import DeliveriesPending, EmptyRoute, RouteLocked
from modules.sync.client import CartLine, DistributionApiClient
from modules.sync.exceptions import BackendError
from modules.sync.snapshots import DeliverySnapshot, OrderSnapshot, RouteSnapshot

pytestmark = pytest.mark.unit

BASE_URL = "http://api.test/api/v1/"


def order_json(status="PENDIENTE", **overrides):
    data = {
        "id": str(uuid4()),
        "order_number": "PED-20260301-A1B2C3",
        "client_id": str(uuid4()),
        "status": status,
        "status_label": "ignored by the snapshot",
        "payment_condition": "CONTADO",
        "total": "23.00",
        "items": [],
    }
    data.update(overrides)
    return data


def route_json(status="publicado", stop_count=2, **overrides):
    data = {
        "id": str(uuid4()),
        "status": status,
        "generation": 0,
        "zone_id": 4,
        "stop_count": stop_count,
        "stops": [],
    }
    data.update(overrides)
    return data


def delivery_json(route_id, status="pending", position=1, **overrides):
    data = {
        "id": str(uuid4()),
        "route": route_id,
        "stop": str(uuid4()),
        "generation": 1,
        "position": position,
        "status": status,
    }
    data.update(overrides)
    return data


class Backend:
    """Canned responses keyed by (method, path)."""

    def __init__(self):
        self.requests = []
        self.responses = {}

    def on(self, method, path, status_code=200, json_body=None, text=None):
        self.responses[(method, path)] = (status_code, json_body, text)

    def __call__(self, request):
        self.requests.append(request)
        status_code, json_body, text = self.responses[(request.method, request.url.path)]
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=json_body)


@pytest.fixture()
def backend():
    return Backend()


@pytest.fixture()
def client(backend):
    with DistributionApiClient(
        base_url=BASE_URL, token="jwt-token", transport=httpx.MockTransport(backend)
    ) as api:
        yield api


def _body(request):
    return json.loads(request.content)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class TestOrders:
    def test_get_orders_unwraps_pagination(self, client, backend):
        backend.on("GET", "/api/v1/orders/", json_body={"count": 1, "results": [order_json()]})

        orders = client.get_orders(status="PENDIENTE")

        assert len(orders) == 1
        assert isinstance(orders[0], OrderSnapshot)
        assert backend.requests[0].url.params["status"] == "PENDIENTE"
        assert backend.requests[0].headers["Authorization"] == "Bearer jwt-token"

    def test_every_request_gets_its_own_request_id(self, client, backend):
        order = order_json()
        backend.on("GET", f"/api/v1/orders/{order['id']}/", json_body=order)

        client.get_order(order["id"])
        client.get_order(order["id"])

        first, second = (request.headers["X-Request-ID"] for request in backend.requests)
        assert first and second and first != second

    def test_change_status_sends_patch(self, client, backend):
        order = OrderSnapshot.model_validate(order_json())
        backend.on(
            "PATCH",
            f"/api/v1/orders/{order.id}/",
            json_body=order_json(status="APROBADO", id=str(order.id)),
        )

        updated = client.change_order_status(order, "APROBADO", actor_role="supervisor")

        assert updated.status == "APROBADO"
        assert _body(backend.requests[0]) == {
            "status": "APROBADO",
            "actor_role": "supervisor",
            "notes": "",
        }

    def test_skipping_steps_rejected_locally(self, client, backend):
        order = OrderSnapshot.model_validate(order_json())
        with pytest.raises(InvalidTransition):
            client.change_order_status(order, "EN_RUTA", actor_role="supervisor")
        assert backend.requests == []

    def test_delivered_order_locked_locally(self, client, backend):
        order = OrderSnapshot.model_validate(order_json(status="ENTREGADO"))
        with pytest.raises(OrderLocked):
            client.change_order_status(order, "ANULADO", actor_role="supervisor")
        assert backend.requests == []

    def test_create_order_from_cart(self, client, backend):
        backend.on("POST", "/api/v1/orders/", status_code=201, json_body=order_json())
        client_id = uuid4()
        lines = [
            CartLine(
                quantity=2,
                unit_price=Decimal("10.00"),
                final_price=Decimal("9.00"),
                product_id=str(uuid4()),
            ),
            CartLine(quantity=1, unit_price=Decimal("5.00"), product_id=str(uuid4())),
        ]

        client.create_order_from_cart(
            client_id, "CREDITO", lines, discount_total=Decimal("1.00"), idempotency_key="k-1"
        )

        request = backend.requests[0]
        body = _body(request)
        assert request.headers["Idempotency-Key"] == "k-1"
        assert body["client_id"] == str(client_id)
        assert body["payment_condition"] == "CREDITO"
        assert body["discount_total"] == "1.00"
        assert body["items"][0]["final_price"] == "9.00"
        assert "final_price" not in body["items"][1]

    def test_cart_discount_above_subtotal_rejected_locally(self, client, backend):
        lines = [CartLine(quantity=1, unit_price=Decimal("5.00"), product_id=str(uuid4()))]
        with pytest.raises(InvalidOrderAmount):
            client.create_order_from_cart(uuid4(), "CONTADO", lines, Decimal("6.00"))
        assert backend.requests == []

    def test_empty_cart_rejected_locally(self, client, backend):
        with pytest.raises(InvalidOrderAmount):
            client.create_order_from_cart(uuid4(), "CONTADO", [])
        assert backend.requests == []

    def test_preview_totals(self):
        totals = DistributionApiClient.preview_totals(
            [CartLine(quantity=3, unit_price=Decimal("2.00"))],
            tax_rate=Decimal("0.15"),
        )
        assert totals.total == Decimal("6.90")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class TestRoutes:
    def test_start_route_returns_route_and_deliveries(self, client, backend):
        route = RouteSnapshot.model_validate(route_json())
        started = route_json(status="en_curso", id=str(route.id), generation=1)
        backend.on(
            "POST",
            f"/api/v1/routes/{route.id}/start/",
            json_body={
                "route": started,
                "deliveries": [
                    delivery_json(str(route.id), position=1),
                    delivery_json(str(route.id), position=2),
                ],
            },
        )

        new_route, deliveries = client.start_route(route)

        assert new_route.status == "en_curso"
        assert [d.position for d in deliveries] == [1, 2]
        assert _body(backend.requests[0]) == {"actor_role": "transportista"}

    def test_empty_route_rejected_locally(self, client, backend):
        route = RouteSnapshot.model_validate(route_json(stop_count=0))
        with pytest.raises(EmptyRoute):
            client.start_route(route)
        assert backend.requests == []

    def test_complete_with_pending_deliveries_rejected_locally(self, client, backend):
        route = RouteSnapshot.model_validate(route_json(status="en_curso"))
        deliveries = [
            DeliverySnapshot.model_validate(delivery_json(str(route.id), status="delivered")),
            DeliverySnapshot.model_validate(delivery_json(str(route.id), status="in_transit")),
        ]
        with pytest.raises(DeliveriesPending):
            client.complete_route(route, deliveries)
        assert backend.requests == []

    def test_deactivate_terminal_snapshot_rejected_locally(self, client, backend):
        route = RouteSnapshot.model_validate(route_json(status="completado"))
        with pytest.raises(RouteLocked):
            client.deactivate_route(route)
        assert backend.requests == []

    def test_deactivate_by_id_defers_to_backend(self, client, backend):
        route_id = str(uuid4())
        backend.on(
            "POST",
            f"/api/v1/routes/{route_id}/deactivate/",
            json_body=route_json(status="cancelado", id=route_id),
        )

        route = client.deactivate_route(route_id, reason="rain")

        assert route.status == "cancelado"
        assert _body(backend.requests[0]) == {"actor_role": "supervisor", "reason": "rain"}

    def test_prepare_stop(self, client, backend):
        route = RouteSnapshot.model_validate(route_json())
        stop_id = str(uuid4())
        backend.on(
            "POST",
            f"/api/v1/routes/{route.id}/stops/{stop_id}/prepare/",
            json_body={
                "id": stop_id,
                "client_id": str(uuid4()),
                "position": 1,
                "insertion_index": 1,
                "prepared_at": "2026-06-15T08:30:00Z",
            },
        )

        stop = client.prepare_stop(route, stop_id)

        assert str(stop.id) == stop_id
        assert stop.prepared_at is not None

    def test_prepare_on_started_route_rejected_locally(self, client, backend):
        route = RouteSnapshot.model_validate(route_json(status="en_curso"))
        with pytest.raises(RouteLocked):
            client.prepare_stop(route, uuid4())
        assert backend.requests == []

    def test_update_vehicle(self, client, backend):
        route = RouteSnapshot.model_validate(route_json())
        vehicle_id = str(uuid4())
        backend.on(
            "PUT",
            f"/api/v1/routes/{route.id}/vehicle/",
            json_body=route_json(id=str(route.id), vehicle_id=vehicle_id),
        )

        updated = client.update_vehicle(route, vehicle_id)

        assert str(updated.vehicle_id) == vehicle_id
        assert _body(backend.requests[0]) == {"vehicle_id": vehicle_id}

    def test_update_vehicle_on_cancelled_route_rejected_locally(self, client, backend):
        route = RouteSnapshot.model_validate(route_json(status="cancelado"))
        with pytest.raises(RouteLocked):
            client.update_vehicle(route, uuid4())
        assert backend.requests == []

    def test_get_deliveries_of_current_start(self, client, backend):
        route_id = str(uuid4())
        backend.on(
            "GET",
            f"/api/v1/routes/{route_id}/deliveries/",
            json_body=[delivery_json(route_id)],
        )
        deliveries = client.get_deliveries(route_id)
        assert [str(d.route) for d in deliveries] == [route_id]


# ---------------------------------------------------------------------------
# Deliveries
# ---------------------------------------------------------------------------


class TestDeliveries:
    def test_mark_delivered_with_evidence(self, client, backend):
        route_id = str(uuid4())
        delivery = DeliverySnapshot.model_validate(
            delivery_json(route_id, status="in_transit")
        )
        backend.on(
            "POST",
            f"/api/v1/deliveries/{delivery.id}/mark/",
            json_body=delivery_json(route_id, status="delivered", id=str(delivery.id)),
        )

        marked = client.mark_delivery(delivery, "en_curso", "delivered", evidence="sig.png")

        assert marked.status == "delivered"
        assert _body(backend.requests[0]) == {
            "status": "delivered",
            "notes": "",
            "evidence": "sig.png",
        }

    def test_inactive_route_rejected_locally(self, client, backend):
        delivery = DeliverySnapshot.model_validate(delivery_json(str(uuid4())))
        with pytest.raises(RouteNotActive):
            client.mark_delivery(delivery, "completado", "in_transit")
        assert backend.requests == []

    def test_missing_evidence_rejected_locally(self, client, backend):
        delivery = DeliverySnapshot.model_validate(
            delivery_json(str(uuid4()), status="in_transit")
        )
        with pytest.raises(EvidenceRequired):
            client.mark_delivery(delivery, "en_curso", "delivered")
        assert backend.requests == []

    def test_overlong_evidence_rejected_locally(self, client, backend):
        delivery = DeliverySnapshot.model_validate(
            delivery_json(str(uuid4()), status="in_transit")
        )
        with pytest.raises(EvidenceTooLong):
            client.mark_delivery(delivery, "en_curso", "delivered", evidence="p" * 256)
        assert backend.requests == []


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestBackendErrors:
    def test_error_envelope_is_parsed(self, client, backend):
        route_id = str(uuid4())
        backend.on(
            "GET",
            f"/api/v1/routes/{route_id}/",
            status_code=404,
            json_body={
                "type": "client_error",
                "errors": [{"code": "route_not_found", "detail": "Route not found.", "attr": None}],
            },
        )

        with pytest.raises(BackendError) as exc_info:
            client.get_route(route_id)

        error = exc_info.value
        assert error.status_code == 404
        assert error.code == "route_not_found"
        assert error.detail == "Route not found."
        assert error.is_transport_error is False

    def test_non_json_error(self, client, backend):
        backend.on("GET", "/api/v1/orders/", status_code=502, text="Bad Gateway")

        with pytest.raises(BackendError) as exc_info:
            client.get_orders()

        assert exc_info.value.status_code == 502
        assert exc_info.value.code == "backend_error"

    def test_transport_error(self):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        api = DistributionApiClient(base_url=BASE_URL, transport=httpx.MockTransport(unreachable))
        with pytest.raises(BackendError) as exc_info:
            api.get_orders()

        assert exc_info.value.is_transport_error is True
        assert exc_info.value.code == "transport_error"
        api.close()
