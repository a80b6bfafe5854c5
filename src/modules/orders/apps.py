from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderLineCreated,
            OrderLineRemoved,
            OrderStageChanged,
            UpsellAccepted,
        )
        from modules.orders.handlers import (
            order_line_created_handler,
            order_line_removed_handler,
            order_stage_changed_handler,
            upsell_accepted_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderLineCreated, order_line_created_handler)
        event_bus.subscribe(OrderLineRemoved, order_line_removed_handler)
        event_bus.subscribe(UpsellAccepted, upsell_accepted_handler)
        event_bus.subscribe(OrderStageChanged, order_stage_changed_handler)
