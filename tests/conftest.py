from decimal import Decimal
from uuid import uuid4

import pytest

from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.core.constants import ActorRole
from modules.orders.dtos import CartLineDTO, CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.routes.dtos import CreateRouteDTO, StopDTO
from modules.routes.views import build_route_service


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def user():
    return get_user_model().objects.create_user(username="operator", password="testpass123")


@pytest.fixture()
def auth_client(user):
    """APIClient with a force-authenticated Django user."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Services and factories
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return OrderService(order_repository=OrderDjangoRepository(), tax_rate=Decimal("0.15"))


@pytest.fixture()
def route_service():
    return build_route_service()


@pytest.fixture()
def make_order(order_service):
    """Create a PENDIENTE order for a client (a new client by default)."""

    def _make(client_id=None, lines=None, discount_total=Decimal("0.00")):
        lines = lines or [(2, Decimal("10.00"))]
        dto = CreateOrderDTO(
            client_id=client_id or uuid4(),
            items=[
                CartLineDTO(product_id=uuid4(), quantity=quantity, unit_price=price)
                for quantity, price in lines
            ],
            discount_total=discount_total,
        )
        return order_service.create_order(dto).order

    return _make


@pytest.fixture()
def make_route(route_service):
    """Create a published route with *stops* client-only stops."""

    def _make(stops=2, zone_id=7):
        dto = CreateRouteDTO(
            name="Ruta Norte",
            zone_id=zone_id,
            stops=[StopDTO(client_id=uuid4()) for _ in range(stops)],
        )
        return route_service.create_route(dto, actor_role=ActorRole.SUPERVISOR)

    return _make


@pytest.fixture()
def started_route(route_service, make_route):
    """An en_curso route with two pending deliveries."""
    route = make_route(stops=2)
    route, deliveries = route_service.start_route(str(route.id), actor_role=ActorRole.DRIVER)
    return route, deliveries
