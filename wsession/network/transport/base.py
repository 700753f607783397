"""Transport abstractions for the session state machine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from itertools import count
from typing import Callable, Sequence, Union

Payload = Union[str, bytes]

_handle_ids = count(1)


@dataclass(frozen=True)
class TransportCallbacks:
    """Notification sinks a transport delivers its events to."""

    on_open: Callable[[], None]
    on_close: Callable[[int, str], None]
    on_error: Callable[[BaseException], None]
    on_message: Callable[[Payload], None]


class BaseTransport(ABC):
    """One physical WebSocket-like connection.

    Implementations start connecting on construction and report progress only
    through the callbacks. ``close`` must be safe to call repeatedly, and the
    close notification is delivered at most once per handle. A forced close
    must deliver it without waiting on the peer.
    """

    def __init__(self, url: str, protocols: Sequence[str], callbacks: TransportCallbacks) -> None:
        self.url = url
        self.protocols = list(protocols)
        self.handle_id = next(_handle_ids)
        self._callbacks = callbacks
        self._close_notified = False

    @abstractmethod
    def send(self, payload: Payload) -> None:
        ...

    @abstractmethod
    def close(self, code: int = 1000, reason: str = "", *, force: bool = False) -> None:
        """Request closure; ``force`` drops the connection without a closing handshake."""

    @property
    def closing(self) -> bool:
        """True once closure was requested or completed."""

        return self._close_notified

    @property
    def closed(self) -> bool:
        return self._close_notified

    def _notify_open(self) -> None:
        if self._close_notified:
            return
        self._callbacks.on_open()

    def _notify_message(self, payload: Payload) -> None:
        if self._close_notified:
            return
        self._callbacks.on_message(payload)

    def _notify_error(self, error: BaseException) -> None:
        if self._close_notified:
            return
        self._callbacks.on_error(error)

    def _notify_close(self, code: int, reason: str = "") -> None:
        if self._close_notified:
            return
        self._close_notified = True
        self._callbacks.on_close(code, reason)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} #{self.handle_id} {self.url}>"


TransportFactory = Callable[[str, Sequence[str], TransportCallbacks], BaseTransport]
