"""Delivery DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import EVIDENCE_REF_MAX_LENGTH, DeliveryStatus
from modules.deliveries.models import Delivery


class MarkDeliverySerializer(serializers.Serializer):
    """Validates a driver mark.

    ``status`` and ``reason`` are free strings: illegal values are
    reported by the delivery state machine with domain error codes.
    """

    status = serializers.CharField()
    evidence = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=EVIDENCE_REF_MAX_LENGTH
    )
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate_status(self, value: str) -> str:
        return value.strip().lower()


class DeliverySerializer(serializers.ModelSerializer):
    status_label = serializers.SerializerMethodField()

    class Meta:
        model = Delivery
        fields = [
            "id",
            "route",
            "stop",
            "order",
            "generation",
            "position",
            "status",
            "status_label",
            "window_start",
            "window_end",
            "item_count",
            "evidence_ref",
            "failure_reason",
            "notes",
            "in_transit_at",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_status_label(self, obj: Delivery) -> str:
        return DeliveryStatus(obj.status).label
