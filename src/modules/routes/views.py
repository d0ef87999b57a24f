"""Route API views.

Every lifecycle action goes through ``RouteService``; domain exceptions
propagate to ``standard_exception_handler``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.serializers import DeliverySerializer
from modules.deliveries.services import DeliveryService
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.routes.dtos import CreateRouteDTO, StopDTO
from modules.routes.filters import RouteFilter
from modules.routes.models import Route
from modules.routes.repositories.django_repository import RouteDjangoRepository
from modules.routes.serializers import (
    CreateRouteSerializer,
    EligibilitySerializer,
    ReorderStopsSerializer,
    RouteActionSerializer,
    RouteListSerializer,
    RouteSerializer,
    RouteStartSerializer,
    RouteStatusHistorySerializer,
    StopInputSerializer,
    StopSerializer,
    UpdateVehicleSerializer,
)
from modules.routes.services import RouteService

UUID_PATTERN = r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}"


def build_route_service() -> RouteService:
    delivery_repository = DeliveryDjangoRepository()
    return RouteService(
        route_repository=RouteDjangoRepository(),
        delivery_repository=delivery_repository,
        order_repository=OrderDjangoRepository(),
        delivery_service=DeliveryService(delivery_repository=delivery_repository),
    )


class RouteViewSet(GenericViewSet):
    queryset = Route.objects.all()
    filterset_class = RouteFilter
    search_fields = ["name"]
    ordering_fields = ["created_at", "scheduled_date", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_route_service()

    def get_queryset(self):
        return self._service.list_routes()

    def _action_data(self, request: Request) -> dict:
        serializer = RouteActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/routes/"""
        serializer = CreateRouteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        actor_role = data.pop("actor_role")
        data["stops"] = [StopDTO(**stop) for stop in data.get("stops", [])]

        route = self._service.create_route(
            CreateRouteDTO(**data), actor_role=actor_role, user=request.user
        )
        return Response(RouteSerializer(route).data, status=status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/routes/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = RouteListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/routes/{pk}/ (stops in visit order)."""
        route = self._service.get_route(str(pk))
        return Response(RouteSerializer(route).data)

    # ------------------------------------------------------------------
    # Stops (only while publicado)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="stops")
    def add_stop(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/routes/{pk}/stops/"""
        serializer = StopInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self._service.add_stop(str(pk), StopDTO(**serializer.validated_data))
        route = self._service.get_route(str(pk))
        return Response(RouteSerializer(route).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["delete"],
        url_path=rf"stops/(?P<stop_id>{UUID_PATTERN})",
    )
    def remove_stop(
        self, request: Request, pk: str | None = None, stop_id: str | None = None
    ) -> Response:
        """DELETE /api/v1/routes/{pk}/stops/{stop_id}/"""
        route = self._service.remove_stop(str(pk), str(stop_id))
        return Response(RouteSerializer(route).data)

    @action(detail=True, methods=["put"], url_path="stops/order")
    def reorder_stops(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/routes/{pk}/stops/order/ with ``{"stop_ids": [...]}``."""
        serializer = ReorderStopsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        route = self._service.reorder_stops(str(pk), serializer.validated_data["stop_ids"])
        return Response(RouteSerializer(route).data)

    @action(
        detail=True,
        methods=["post"],
        url_path=rf"stops/(?P<stop_id>{UUID_PATTERN})/prepare",
    )
    def prepare_stop(
        self, request: Request, pk: str | None = None, stop_id: str | None = None
    ) -> Response:
        """POST /api/v1/routes/{pk}/stops/{stop_id}/prepare/ (warehouse load ready)."""
        stop = self._service.prepare_stop(str(pk), str(stop_id), user=request.user)
        return Response(StopSerializer(stop).data)

    @action(detail=True, methods=["put", "patch"])
    def vehicle(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/routes/{pk}/vehicle/ with ``{"vehicle_id": ...}``."""
        serializer = UpdateVehicleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        route = self._service.update_vehicle(str(pk), serializer.validated_data["vehicle_id"])
        return Response(RouteSerializer(route).data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def start(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/routes/{pk}/start/ → ``{"route": ..., "deliveries": [...]}``."""
        data = self._action_data(request)
        route, deliveries = self._service.start_route(
            str(pk), actor_role=data["actor_role"], user=request.user
        )
        payload = RouteStartSerializer({"route": route, "deliveries": deliveries}).data
        return Response(payload)

    @action(detail=True, methods=["post"])
    def complete(self, request: Request, pk: str | None = None) -> Response:
        data = self._action_data(request)
        route = self._service.complete_route(
            str(pk), actor_role=data["actor_role"], user=request.user
        )
        return Response(RouteSerializer(route).data)

    @action(detail=True, methods=["post"])
    def deactivate(self, request: Request, pk: str | None = None) -> Response:
        data = self._action_data(request)
        route = self._service.deactivate_route(
            str(pk),
            actor_role=data["actor_role"],
            reason=data["reason"],
            user=request.user,
        )
        return Response(RouteSerializer(route).data)

    @action(detail=True, methods=["post"])
    def reset(self, request: Request, pk: str | None = None) -> Response:
        data = self._action_data(request)
        route = self._service.reset_route(
            str(pk), actor_role=data["actor_role"], user=request.user
        )
        return Response(RouteSerializer(route).data)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"])
    def deliveries(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/routes/{pk}/deliveries/ (current generation)."""
        deliveries = self._service.get_deliveries(str(pk))
        return Response(DeliverySerializer(deliveries, many=True).data)

    @action(detail=True, methods=["get"])
    def eligibility(self, request: Request, pk: str | None = None) -> Response:
        result = self._service.eligibility(str(pk))
        return Response(EligibilitySerializer(result).data)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        records = self._service.get_history(str(pk))
        return Response(RouteStatusHistorySerializer(records, many=True).data)
