"""Session configuration."""

from wsession.config.settings import (
    HeartbeatOptions,
    ReconnectOptions,
    SessionSettings,
    get_settings,
)

__all__ = ["SessionSettings", "HeartbeatOptions", "ReconnectOptions", "get_settings"]
