from django.urls import path

from .consumers import WarehouseEventsConsumer

websocket_urlpatterns = [
    path("ws/events/", WarehouseEventsConsumer.as_asgi()),
]
