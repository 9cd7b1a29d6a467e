"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.dispatcher_consumer import DispatcherConsumer

websocket_urlpatterns = [
    # Driver endpoint: offers, confirmations, GPS pings, blast responses
    # URL: ws://localhost:8000/ws/driver/?token=<access>
    re_path(
        r"ws/driver/$",
        DriverConsumer.as_asgi(),
        name="driver-ws"
    ),

    # Dispatcher endpoint: live load and blast events
    # URL: ws://localhost:8000/ws/dispatcher/?token=<access>
    re_path(
        r"ws/dispatcher/$",
        DispatcherConsumer.as_asgi(),
        name="dispatcher-ws"
    ),
]
