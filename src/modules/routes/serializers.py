"""Route DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.core.constants import ActorRole
from modules.deliveries.serializers import DeliverySerializer
from modules.routes.constants import DayOfWeek, Frequency, RouteStatus
from modules.routes.models import Route, RouteStatusHistory, Stop

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class StopInputSerializer(serializers.Serializer):
    client_id = serializers.UUIDField(required=False, allow_null=True)
    order_id = serializers.UUIDField(required=False, allow_null=True)
    position = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)

    def validate(self, attrs):
        if not attrs.get("client_id") and not attrs.get("order_id"):
            raise serializers.ValidationError("A stop needs a client_id or an order_id.")
        return attrs


class CreateRouteSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, default="", allow_blank=True)
    zone_id = serializers.IntegerField(min_value=1)
    driver_id = serializers.UUIDField(required=False, allow_null=True)
    vehicle_id = serializers.UUIDField(required=False, allow_null=True)
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    frequency = serializers.ChoiceField(choices=Frequency.choices, default=Frequency.WEEKLY)
    day_of_week = serializers.ChoiceField(
        choices=DayOfWeek.choices, required=False, allow_null=True
    )
    stops = StopInputSerializer(many=True, required=False, default=list)
    actor_role = serializers.ChoiceField(
        choices=ActorRole.choices, default=ActorRole.SUPERVISOR
    )


class ReorderStopsSerializer(serializers.Serializer):
    stop_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=True)


class UpdateVehicleSerializer(serializers.Serializer):
    vehicle_id = serializers.UUIDField(allow_null=True)


class RouteActionSerializer(serializers.Serializer):
    """Body of the start / complete / deactivate / reset actions."""

    actor_role = serializers.ChoiceField(choices=ActorRole.choices)
    reason = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StopSerializer(serializers.ModelSerializer):
    class Meta:
        model = Stop
        fields = [
            "id",
            "client_id",
            "order",
            "position",
            "insertion_index",
            "notes",
            "prepared_at",
            "prepared_by",
        ]
        read_only_fields = fields


class RouteSerializer(serializers.ModelSerializer):
    """Route with its stops in visit order."""

    stops = StopSerializer(source="ordered_stops", many=True, read_only=True)
    stop_count = serializers.IntegerField(read_only=True)
    status_label = serializers.SerializerMethodField()

    class Meta:
        model = Route
        fields = [
            "id",
            "name",
            "zone_id",
            "driver_id",
            "vehicle_id",
            "scheduled_date",
            "frequency",
            "day_of_week",
            "status",
            "status_label",
            "generation",
            "started_at",
            "completed_at",
            "cancelled_at",
            "cancel_reason",
            "stop_count",
            "stops",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_status_label(self, obj: Route) -> str:
        return RouteStatus(obj.status).label


class RouteListSerializer(serializers.ModelSerializer):
    stop_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Route
        fields = [
            "id",
            "name",
            "zone_id",
            "driver_id",
            "scheduled_date",
            "status",
            "generation",
            "stop_count",
            "created_at",
        ]
        read_only_fields = fields


class RouteStartSerializer(serializers.Serializer):
    route = RouteSerializer()
    deliveries = DeliverySerializer(many=True)


class RouteWarningSerializer(serializers.Serializer):
    kind = serializers.CharField(source="kind.value")
    count = serializers.IntegerField(allow_null=True)
    message = serializers.CharField()


class EligibilitySerializer(serializers.Serializer):
    can_complete = serializers.BooleanField()
    pending_count = serializers.IntegerField()
    warning = RouteWarningSerializer(allow_null=True)


class RouteStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = RouteStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "actor_role",
            "user",
            "notes",
            "created_at",
        ]
        read_only_fields = fields
