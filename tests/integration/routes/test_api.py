"""Integration tests for the Route API.

Covers route creation, stop editing, the start / complete / deactivate /
reset lifecycle, eligibility and the stop ordering seen by clients.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.routes.constants import RouteStatus
from modules.routes.models import Route

pytestmark = pytest.mark.integration

ROUTES_URL = "/api/v1/routes/"


@pytest.fixture()
def route_payload():
    return {
        "name": "Ruta Sur",
        "zone_id": 12,
        "driver_id": str(uuid4()),
        "frequency": "QUINCENAL",
        "day_of_week": "MARTES",
        "stops": [{"client_id": str(uuid4())} for _ in range(3)],
    }


@pytest.fixture()
def route(auth_client, route_payload):
    response = auth_client.post(ROUTES_URL, route_payload, format="json")
    assert response.status_code == 201
    return response.data


def _action(client, route_id, name, actor_role="transportista", **extra):
    return client.post(
        f"{ROUTES_URL}{route_id}/{name}/", {"actor_role": actor_role, **extra}, format="json"
    )


def _mark_all(client, deliveries, status="delivered"):
    for delivery in deliveries:
        client.post(
            f"/api/v1/deliveries/{delivery['id']}/mark/", {"status": "in_transit"}, format="json"
        )
        body = {"status": status}
        if status == "delivered":
            body["evidence"] = "signature.png"
        else:
            body["reason"] = "cliente_ausente"
        response = client.post(
            f"/api/v1/deliveries/{delivery['id']}/mark/", body, format="json"
        )
        assert response.status_code == 200


class TestCreateRoute:
    def test_create_published_route(self, route):
        assert route["status"] == RouteStatus.PUBLISHED
        assert route["status_label"] == "Publicado"
        assert route["frequency"] == "QUINCENAL"
        assert route["stop_count"] == 3
        assert [stop["position"] for stop in route["stops"]] == [1, 2, 3]

    def test_stop_needs_client_or_order(self, auth_client, route_payload):
        route_payload["stops"] = [{"notes": "somewhere"}]
        response = auth_client.post(ROUTES_URL, route_payload, format="json")

        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "stops.0"

    def test_stop_for_unknown_order(self, auth_client, route_payload):
        route_payload["stops"] = [{"order_id": str(uuid4())}]
        response = auth_client.post(ROUTES_URL, route_payload, format="json")

        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "order_not_found"

    def test_unknown_frequency(self, auth_client, route_payload):
        route_payload["frequency"] = "DIARIO"
        response = auth_client.post(ROUTES_URL, route_payload, format="json")
        assert response.status_code == 400


class TestStops:
    def test_add_stop(self, auth_client, route):
        response = auth_client.post(
            f"{ROUTES_URL}{route['id']}/stops/", {"client_id": str(uuid4())}, format="json"
        )

        assert response.status_code == 201
        assert response.data["stop_count"] == 4
        assert response.data["stops"][-1]["position"] == 4

    def test_remove_stop(self, auth_client, route):
        stop_id = route["stops"][1]["id"]
        response = auth_client.delete(f"{ROUTES_URL}{route['id']}/stops/{stop_id}/")

        assert response.status_code == 200
        assert stop_id not in [stop["id"] for stop in response.data["stops"]]

    def test_reorder_stops(self, auth_client, route):
        new_order = [stop["id"] for stop in reversed(route["stops"])]
        response = auth_client.put(
            f"{ROUTES_URL}{route['id']}/stops/order/", {"stop_ids": new_order}, format="json"
        )

        assert response.status_code == 200
        assert [stop["id"] for stop in response.data["stops"]] == new_order

    def test_incomplete_reorder(self, auth_client, route):
        response = auth_client.put(
            f"{ROUTES_URL}{route['id']}/stops/order/",
            {"stop_ids": [route["stops"][0]["id"]]},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["errors"][0]["code"] == "invalid_stop_order"

    def test_stops_locked_once_started(self, auth_client, route):
        _action(auth_client, route["id"], "start")
        response = auth_client.post(
            f"{ROUTES_URL}{route['id']}/stops/", {"client_id": str(uuid4())}, format="json"
        )

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "route_locked"


class TestPreparation:
    def test_prepare_stop(self, auth_client, route, user):
        stop_id = route["stops"][0]["id"]
        response = auth_client.post(f"{ROUTES_URL}{route['id']}/stops/{stop_id}/prepare/")

        assert response.status_code == 200
        assert response.data["id"] == stop_id
        assert response.data["prepared_at"] is not None
        assert response.data["prepared_by"] == user.pk

        detail = auth_client.get(f"{ROUTES_URL}{route['id']}/").data
        assert [stop["prepared_at"] is not None for stop in detail["stops"]] == [
            True,
            False,
            False,
        ]

    def test_prepare_unknown_stop(self, auth_client, route):
        response = auth_client.post(f"{ROUTES_URL}{route['id']}/stops/{uuid4()}/prepare/")

        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "stop_not_found"

    def test_prepare_locked_once_started(self, auth_client, route):
        _action(auth_client, route["id"], "start")
        stop_id = route["stops"][0]["id"]

        response = auth_client.post(f"{ROUTES_URL}{route['id']}/stops/{stop_id}/prepare/")

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "route_locked"

    def test_update_vehicle(self, auth_client, route):
        vehicle_id = str(uuid4())
        response = auth_client.put(
            f"{ROUTES_URL}{route['id']}/vehicle/", {"vehicle_id": vehicle_id}, format="json"
        )

        assert response.status_code == 200
        assert response.data["vehicle_id"] == vehicle_id
        assert response.data["status"] == RouteStatus.PUBLISHED

    def test_update_vehicle_requires_field(self, auth_client, route):
        response = auth_client.patch(f"{ROUTES_URL}{route['id']}/vehicle/", {}, format="json")

        assert response.status_code == 400
        assert response.data["errors"][0]["attr"] == "vehicle_id"

    def test_update_vehicle_locked_once_cancelled(self, auth_client, route):
        _action(auth_client, route["id"], "deactivate", actor_role="supervisor")

        response = auth_client.put(
            f"{ROUTES_URL}{route['id']}/vehicle/", {"vehicle_id": str(uuid4())}, format="json"
        )

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "route_locked"
        assert Route.objects.get(id=route["id"]).vehicle_id is None


class TestLifecycle:
    def test_start_returns_route_and_pending_deliveries(self, auth_client, route):
        response = _action(auth_client, route["id"], "start")

        assert response.status_code == 200
        assert response.data["route"]["status"] == RouteStatus.IN_PROGRESS
        assert response.data["route"]["generation"] == 1
        deliveries = response.data["deliveries"]
        assert [d["status"] for d in deliveries] == ["pending"] * 3
        assert [str(d["stop"]) for d in deliveries] == [stop["id"] for stop in route["stops"]]

    def test_stop_order_identical_after_start(self, auth_client, route):
        started = _action(auth_client, route["id"], "start").data["route"]
        again = auth_client.get(f"{ROUTES_URL}{route['id']}/").data

        assert [s["id"] for s in again["stops"]] == [s["id"] for s in started["stops"]]
        assert [s["id"] for s in again["stops"]] == [s["id"] for s in route["stops"]]

    def test_empty_route_cannot_start(self, auth_client, route_payload):
        route_payload["stops"] = []
        route = auth_client.post(ROUTES_URL, route_payload, format="json").data

        response = _action(auth_client, route["id"], "start")

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "empty_route"
        assert Route.objects.get(id=route["id"]).status == RouteStatus.PUBLISHED

    def test_complete_blocked_by_pending_deliveries(self, auth_client, route):
        _action(auth_client, route["id"], "start")

        eligibility = auth_client.get(f"{ROUTES_URL}{route['id']}/eligibility/").data
        assert eligibility == {
            "can_complete": False,
            "pending_count": 3,
            "warning": {
                "kind": "pending_deliveries",
                "count": 3,
                "message": "3 deliveries are still pending.",
            },
        }

        response = _action(auth_client, route["id"], "complete")
        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "deliveries_pending"
        assert response.data["errors"][0]["meta"] == {"pending_count": 3}

    def test_complete_after_all_delivered(self, auth_client, route):
        deliveries = _action(auth_client, route["id"], "start").data["deliveries"]
        _mark_all(auth_client, deliveries)

        eligibility = auth_client.get(f"{ROUTES_URL}{route['id']}/eligibility/").data
        assert eligibility["can_complete"] is True
        assert eligibility["warning"] is None

        response = _action(auth_client, route["id"], "complete")
        assert response.status_code == 200
        assert response.data["status"] == RouteStatus.COMPLETED

    def test_failed_deliveries_do_not_block(self, auth_client, route):
        deliveries = _action(auth_client, route["id"], "start").data["deliveries"]
        _mark_all(auth_client, deliveries[:1], status="failed")
        _mark_all(auth_client, deliveries[1:])

        response = _action(auth_client, route["id"], "complete")
        assert response.status_code == 200

    def test_deactivate_aborts_open_deliveries(self, auth_client, route):
        deliveries = _action(auth_client, route["id"], "start").data["deliveries"]

        response = _action(
            auth_client, route["id"], "deactivate", actor_role="supervisor", reason="flood"
        )
        assert response.status_code == 200
        assert response.data["status"] == RouteStatus.CANCELLED
        assert response.data["cancel_reason"] == "flood"

        current = auth_client.get(f"{ROUTES_URL}{route['id']}/deliveries/").data
        assert [d["id"] for d in current] == [d["id"] for d in deliveries]
        assert {d["failure_reason"] for d in current} == {"ruta_abortada"}

    def test_reset_not_allowed_with_deliveries(self, auth_client, route):
        _action(auth_client, route["id"], "start")
        response = _action(auth_client, route["id"], "reset", actor_role="supervisor")

        assert response.status_code == 409
        assert response.data["errors"][0]["code"] == "reset_not_allowed"

    def test_action_requires_actor_role(self, auth_client, route):
        response = auth_client.post(f"{ROUTES_URL}{route['id']}/start/", {}, format="json")
        assert response.status_code == 400

    def test_history(self, auth_client, route):
        _action(auth_client, route["id"], "start")
        response = auth_client.get(f"{ROUTES_URL}{route['id']}/history/")

        assert [r["new_status"] for r in response.data] == ["en_curso", "publicado"]


class TestReadRoutes:
    def test_list_and_filter(self, auth_client, route):
        assert auth_client.get(ROUTES_URL, {"zone": 12}).data["count"] == 1
        assert auth_client.get(ROUTES_URL, {"status": "en_curso"}).data["count"] == 0

    def test_unknown_route(self, auth_client):
        response = auth_client.get(f"{ROUTES_URL}{uuid4()}/")

        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "route_not_found"
