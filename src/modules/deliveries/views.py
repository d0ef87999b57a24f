"""Delivery API views."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.deliveries.filters import DeliveryFilter
from modules.deliveries.models import Delivery
from modules.deliveries.repositories.django_repository import DeliveryDjangoRepository
from modules.deliveries.serializers import DeliverySerializer, MarkDeliverySerializer
from modules.deliveries.services import DeliveryService


class DeliveryViewSet(GenericViewSet):
    """Read deliveries and let drivers mark them."""

    queryset = Delivery.objects.all()
    filterset_class = DeliveryFilter
    ordering_fields = ["position", "window_start", "status"]
    ordering = ["route", "generation", "position"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = DeliveryService(delivery_repository=DeliveryDjangoRepository())

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "delivery_marking" if self.action == "mark" else None
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_deliveries()

    def list(self, request: Request) -> Response:
        """GET /api/v1/deliveries/?route=&status="""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = DeliverySerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        delivery = self._service.get_delivery(str(pk))
        return Response(DeliverySerializer(delivery).data)

    @action(detail=True, methods=["post"])
    def mark(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/deliveries/{pk}/mark/"""
        serializer = MarkDeliverySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        delivery = self._service.mark_delivery(
            str(pk),
            data["status"],
            evidence=data.get("evidence"),
            reason=data.get("reason"),
            notes=data["notes"],
        )
        return Response(DeliverySerializer(delivery).data)
