"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .driver_consumer import DriverConsumer
from .dispatcher_consumer import DispatcherConsumer

__all__ = [
    "BaseConsumer",
    "DriverConsumer",
    "DispatcherConsumer",
]
