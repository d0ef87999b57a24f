"""Order API views.

Exposes ``OrderService`` via HTTP.  Domain exceptions propagate to
``standard_exception_handler``, which maps them to status codes.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.constants import ActorRole
from modules.orders.dtos import CartLineDTO, CreateOrderDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    ChangeOrderStatusSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    StatusHistorySerializer,
)
from modules.orders.services import OrderService


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does not extend ``ModelViewSet``: every write goes through the
    service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number"]
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(order_repository=OrderDjangoRepository())

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve", "history"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto_kwargs = {
            "client_id": data["client_id"],
            "payment_condition": data["payment_condition"],
            "notes": data.get("notes", ""),
            "idempotency_key": request.headers.get("Idempotency-Key"),
        }
        if data.get("discount_total") is not None:
            dto_kwargs["discount_total"] = data["discount_total"]

        try:
            items = [CartLineDTO(**item) for item in data["items"]]
            dto = CreateOrderDTO(items=items, **dto_kwargs)
        except PydanticValidationError as exc:
            raise ValidationError(
                {"non_field_errors": [error["msg"] for error in exc.errors()]}
            ) from exc

        result = self._service.create_order(
            dto,
            actor_role=ActorRole.CLIENT,
            user=request.user,
        )
        return Response(
            OrderSerializer(result.order).data,
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/"""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(str(pk))
        return Response(OrderSerializer(order).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Body: ``{"status": ..., "actor_role": ..., "notes": ...}``.
        """
        serializer = ChangeOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = self._service.change_status(
            order_id=str(pk),
            new_status=data["status"],
            actor_role=data["actor_role"],
            notes=data["notes"],
            user=request.user,
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        records = self._service.get_history(str(pk))
        return Response(StatusHistorySerializer(records, many=True).data)
