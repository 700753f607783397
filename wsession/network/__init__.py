"""Session state machine and its cooperating policies."""

from wsession.network.buffer import SendBuffer
from wsession.network.heartbeat import HeartbeatMonitor
from wsession.network.reconnect import ReconnectPolicy, RetryLimit, RetryPredicate
from wsession.network.session import Session
from wsession.network.session_state import SessionStatus
from wsession.network.shutdown import register_auto_close
from wsession.network.transport.base import BaseTransport, TransportCallbacks
from wsession.network.transport.dummy import DummyTransport
from wsession.network.transport.websocket import WebSocketTransport

__all__ = [
    "Session",
    "SessionStatus",
    "SendBuffer",
    "HeartbeatMonitor",
    "ReconnectPolicy",
    "RetryLimit",
    "RetryPredicate",
    "register_auto_close",
    "BaseTransport",
    "TransportCallbacks",
    "DummyTransport",
    "WebSocketTransport",
]
