"""Reconnecting WebSocket session manager."""

from wsession.config import HeartbeatOptions, ReconnectOptions, SessionSettings, get_settings
from wsession.network import Session, SessionStatus

__all__ = [
    "Session",
    "SessionStatus",
    "SessionSettings",
    "HeartbeatOptions",
    "ReconnectOptions",
    "get_settings",
]
