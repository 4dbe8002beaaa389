# orders/apps.py
from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"

    def ready(self):
        # status-change notifications
        from . import receivers  # noqa
        # live order console broadcast
        from . import signals_orders  # noqa
