"""Transport handles the session drives."""

from .base import BaseTransport, Payload, TransportCallbacks, TransportFactory
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = [
    "BaseTransport",
    "Payload",
    "TransportCallbacks",
    "TransportFactory",
    "DummyTransport",
    "WebSocketTransport",
]
