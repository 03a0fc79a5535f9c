from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"

    def ready(self):
        from . import signals  # noqa: F401
        from .services.change_feed import ORDERS_TABLE, bump_order_versions, subscribe

        subscribe(ORDERS_TABLE, bump_order_versions, event="*")
