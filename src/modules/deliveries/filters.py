import django_filters

from modules.deliveries.models import Delivery


class DeliveryFilter(django_filters.FilterSet):
    route = django_filters.UUIDFilter(field_name="route_id")
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    generation = django_filters.NumberFilter(field_name="generation")
    order = django_filters.UUIDFilter(field_name="order_id")

    class Meta:
        model = Delivery
        fields = ["route", "status", "generation", "order"]
