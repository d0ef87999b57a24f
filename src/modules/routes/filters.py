import django_filters

from modules.routes.models import Route


class RouteFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    zone = django_filters.NumberFilter(field_name="zone_id")
    driver = django_filters.UUIDFilter(field_name="driver_id")
    date = django_filters.DateFilter(field_name="scheduled_date")
    start_date = django_filters.DateFilter(field_name="scheduled_date", lookup_expr="gte")
    end_date = django_filters.DateFilter(field_name="scheduled_date", lookup_expr="lte")

    class Meta:
        model = Route
        fields = ["status", "zone", "driver", "date", "start_date", "end_date"]
