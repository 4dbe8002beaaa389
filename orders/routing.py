from django.urls import path

from .consumers import OrdersConsoleConsumer

websocket_urlpatterns = [
    path("ws/orders/", OrdersConsoleConsumer.as_asgi()),
]
