from django.apps import AppConfig


class RoutesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.routes"
    label = "routes"

    def ready(self) -> None:
        from modules.routes.events import (
            RouteCancelled,
            RouteCompleted,
            RouteReset,
            RouteStarted,
        )
        from modules.routes.handlers import (
            route_cancelled_handler,
            route_completed_handler,
            route_reset_handler,
            route_started_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(RouteStarted, route_started_handler)
        event_bus.subscribe(RouteCompleted, route_completed_handler)
        event_bus.subscribe(RouteCancelled, route_cancelled_handler)
        event_bus.subscribe(RouteReset, route_reset_handler)
