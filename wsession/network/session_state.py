"""Session status values."""

from __future__ import annotations

import enum


class SessionStatus(enum.Enum):
    """Observable status of a session.

    CLOSED is both terminal (after an explicit close) and re-entrant (while a
    reconnect is pending).
    """

    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
