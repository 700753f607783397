"""Reconnecting WebSocket session: lifecycle, buffering, heartbeat and retries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from wsession.config import SessionSettings, get_settings
from wsession.network.buffer import SendBuffer
from wsession.network.heartbeat import HeartbeatMonitor
from wsession.network.reconnect import ReconnectPolicy
from wsession.network.session_state import SessionStatus
from wsession.network.transport.base import BaseTransport, Payload, TransportCallbacks, TransportFactory
from wsession.network.transport.dummy import DummyTransport
from wsession.network.transport.websocket import WebSocketTransport

LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000

OnConnected = Callable[[BaseTransport], None]
OnDisconnected = Callable[[BaseTransport, int, str], None]
OnError = Callable[[Optional[BaseTransport], BaseException], None]
OnMessage = Callable[[BaseTransport, Payload], None]


def default_transport_factory(settings: SessionSettings) -> TransportFactory:
    """Return the transport factory selected by ``settings.transport``."""

    if settings.transport == "dummy":
        return lambda url, protocols, callbacks: DummyTransport(
            url, protocols, callbacks, auto_open=True, echo=True
        )
    return lambda url, protocols, callbacks: WebSocketTransport(
        url,
        protocols,
        callbacks,
        open_timeout=settings.open_timeout_seconds,
        close_timeout=settings.close_timeout_seconds,
    )


class Session:
    """Logical channel over a sequence of physical transport connections.

    ``send`` succeeds logically while disconnected by buffering, and unexpected
    closes are healed by the reconnect policy when one is configured. All
    methods must be called from the event loop thread; transport notifications
    and timers run there too, so state is never mutated concurrently.
    """

    def __init__(
        self,
        url: str | None = None,
        settings: SessionSettings | None = None,
        *,
        transport_factory: Optional[TransportFactory] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_connected: Optional[OnConnected] = None,
        on_disconnected: Optional[OnDisconnected] = None,
        on_error: Optional[OnError] = None,
        on_message: Optional[OnMessage] = None,
    ) -> None:
        self._settings = settings if settings is not None else get_settings()
        if url is None and self._settings.url is not None:
            url = str(self._settings.url)
        self.url = url
        self.protocols = list(self._settings.protocols)
        self.status = SessionStatus.CLOSED
        self.data: Any = None
        self._loop = loop
        self._transport_factory = transport_factory or default_transport_factory(self._settings)
        self._transport: Optional[BaseTransport] = None
        self._generation = 0
        self._explicitly_closed = False
        self._buffer = SendBuffer()
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._on_error = on_error
        self._on_message = on_message

        self._heartbeat: Optional[HeartbeatMonitor] = None
        heartbeat = self._settings.heartbeat_options()
        if heartbeat is not None:
            self._heartbeat = HeartbeatMonitor(
                heartbeat,
                send_probe=lambda payload: self.send(payload, use_buffer=False),
                on_timeout=self._on_heartbeat_timeout,
                get_loop=self._get_loop,
            )

        self._reconnect: Optional[ReconnectPolicy] = None
        reconnect = self._settings.reconnect_options()
        if reconnect is not None:
            self._reconnect = ReconnectPolicy(reconnect, get_loop=self._get_loop)

        if self._settings.immediate:
            self.open()

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    @property
    def transport(self) -> Optional[BaseTransport]:
        """The live transport handle, if any."""

        return self._transport

    @property
    def explicitly_closed(self) -> bool:
        return self._explicitly_closed

    @property
    def retry_count(self) -> int:
        return self._reconnect.attempts if self._reconnect else 0

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def heartbeat(self) -> Optional[HeartbeatMonitor]:
        return self._heartbeat

    @property
    def reconnect_policy(self) -> Optional[ReconnectPolicy]:
        return self._reconnect

    def open(self) -> None:
        """Open a fresh connection, superseding any existing one."""

        self.close()
        if self._transport is not None:
            LOGGER.debug("Superseding transport %r", self._transport)
            self._transport = None
        self._explicitly_closed = False
        if self._reconnect:
            self._reconnect.reset()
        self._connect()

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Close the connection and suppress reconnection until ``open``."""

        if self._transport is None:
            if self._reconnect and self._reconnect.pending:
                LOGGER.info("Cancelling pending reconnect")
                self._reconnect.cancel()
                self._explicitly_closed = True
            return
        if self._explicitly_closed:
            return
        self._explicitly_closed = True
        if self._heartbeat:
            self._heartbeat.stop()
        if self._reconnect:
            self._reconnect.cancel()
        LOGGER.info("Closing session to %s (%s %s)", self.url, code, reason)
        self._transport.close(code, reason)

    def send(self, payload: Payload, use_buffer: bool = True) -> bool:
        """Transmit ``payload`` now if open, else buffer it (or drop it).

        Returns True only when the payload was handed to an open transport.
        """

        transport = self._transport
        if self.status is not SessionStatus.OPEN or transport is None or transport.closing:
            if use_buffer:
                self._buffer.append(payload)
            return False
        self._buffer.flush(self._transmit)
        if len(self._buffer) or not self._transmit(payload):
            if use_buffer:
                self._buffer.append(payload)
            return False
        return True

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def _connect(self) -> None:
        if self._explicitly_closed or not self.url:
            LOGGER.debug("Skipping connect (explicitly_closed=%s, url=%s)", self._explicitly_closed, self.url)
            return
        self._generation += 1
        token = self._generation
        callbacks = TransportCallbacks(
            on_open=lambda: self._handle_open(token),
            on_close=lambda code, reason: self._handle_close(token, code, reason),
            on_error=lambda error: self._handle_error(token, error),
            on_message=lambda payload: self._handle_message(token, payload),
        )
        self.status = SessionStatus.CONNECTING
        LOGGER.info("Connecting to %s", self.url)
        try:
            self._transport = self._transport_factory(self.url, self.protocols, callbacks)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Failed to create transport for %s: %s", self.url, exc)
            self._generation += 1
            self.status = SessionStatus.CLOSED
            self._call_hook("on_error", self._on_error, None, exc)
            self._schedule_reconnect()

    def _is_current(self, token: int, event: str) -> bool:
        if token == self._generation:
            return True
        LOGGER.debug("Ignoring %s from stale transport (generation %s, current %s)", event, token, self._generation)
        return False

    def _handle_open(self, token: int) -> None:
        if not self._is_current(token, "open"):
            return
        transport = self._transport
        self.status = SessionStatus.OPEN
        LOGGER.info("Session open to %s", self.url)
        self._call_hook("on_connected", self._on_connected, transport)
        if self.status is not SessionStatus.OPEN or self._explicitly_closed:
            return
        if self._heartbeat:
            self._heartbeat.resume()
        self._buffer.flush(self._transmit)

    def _handle_close(self, token: int, code: int, reason: str) -> None:
        if not self._is_current(token, "close"):
            return
        transport = self._transport
        self.status = SessionStatus.CLOSED
        self._transport = None
        if self._heartbeat:
            self._heartbeat.stop()
        LOGGER.info("Session to %s closed (%s %s)", self.url, code, reason)
        self._call_hook("on_disconnected", self._on_disconnected, transport, code, reason)
        if not self._explicitly_closed:
            self._schedule_reconnect()

    def _handle_error(self, token: int, error: BaseException) -> None:
        if not self._is_current(token, "error"):
            return
        LOGGER.warning("Transport error on %s: %s", self.url, error)
        self._call_hook("on_error", self._on_error, self._transport, error)

    def _handle_message(self, token: int, payload: Payload) -> None:
        if not self._is_current(token, "message"):
            return
        if self._heartbeat and self._heartbeat.observe(payload):
            return
        self.data = payload
        self._call_hook("on_message", self._on_message, self._transport, payload)

    def _schedule_reconnect(self) -> None:
        if self._reconnect is None:
            return
        self._reconnect.schedule(self._connect)

    def _on_heartbeat_timeout(self) -> None:
        if self._transport is None:
            return
        if self._heartbeat:
            self._heartbeat.stop()
        LOGGER.warning("Heartbeat timed out, closing transport %r", self._transport)
        self._transport.close(NORMAL_CLOSURE, "heartbeat timeout", force=True)

    def _transmit(self, payload: Payload) -> bool:
        transport = self._transport
        if transport is None or transport.closing:
            return False
        try:
            transport.send(payload)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Transport send failed: %s", exc)
            self._call_hook("on_error", self._on_error, transport, exc)
            return False
        return True

    @staticmethod
    def _call_hook(name: str, hook: Optional[Callable[..., Any]], *args: Any) -> None:
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress session %s callback error", name, exc_info=True)
