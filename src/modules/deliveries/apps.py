from django.apps import AppConfig


class DeliveriesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.deliveries"
    label = "deliveries"

    def ready(self) -> None:
        from modules.deliveries.events import DeliveryStatusChanged
        from modules.deliveries.handlers import delivery_status_changed_handler
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(DeliveryStatusChanged, delivery_status_changed_handler)
