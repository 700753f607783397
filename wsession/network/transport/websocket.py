"""WebSocket transport implementation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional, Sequence

import websockets
from websockets.exceptions import ConnectionClosed

from wsession.network.transport.base import BaseTransport, Payload, TransportCallbacks

LOGGER = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006
INTERNAL_ERROR = 1011


class WebSocketTransport(BaseTransport):
    """Drives one ``websockets`` client connection from a background task.

    ``send`` and ``close`` never block: outbound frames go through a queue
    drained by a writer task, and the closing handshake runs on the loop.
    """

    def __init__(
        self,
        url: str,
        protocols: Sequence[str],
        callbacks: TransportCallbacks,
        *,
        open_timeout: float = 10.0,
        close_timeout: float = 2.0,
    ) -> None:
        super().__init__(url, protocols, callbacks)
        self._open_timeout = open_timeout
        self._close_timeout = close_timeout
        self._ws = None
        self._outbox: asyncio.Queue[Payload] = asyncio.Queue()
        self._close_request: Optional[tuple[int, str]] = None
        self._close_task: Optional[asyncio.Task[None]] = None
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"ws-transport-{self.handle_id}")
        self._task.add_done_callback(self._on_task_done)

    @property
    def closing(self) -> bool:
        return self._close_request is not None or self.closed

    def send(self, payload: Payload) -> None:
        if self._ws is None or self.closing:
            raise RuntimeError("WebSocket transport not connected")
        self._outbox.put_nowait(payload)

    def close(self, code: int = 1000, reason: str = "", *, force: bool = False) -> None:
        if self.closed:
            return
        if self._close_request is not None and not force:
            return
        if self._close_request is None:
            self._close_request = (code, reason)
        if self._ws is None:
            LOGGER.info("Cancelling WebSocket handshake to %s", self.url)
            self._task.cancel()
            if force:
                self._notify_close(*self._close_request)
            return
        if force:
            LOGGER.info("Aborting WebSocket transport #%s (%s %s)", self.handle_id, code, reason)
            self._ws.transport.abort()
            self._task.cancel()
            self._notify_close(*self._close_request)
            return
        LOGGER.info("Closing WebSocket transport #%s (%s %s)", self.handle_id, code, reason)
        self._close_task = asyncio.get_running_loop().create_task(
            self._ws.close(code, reason), name=f"ws-close-{self.handle_id}"
        )
        self._close_task.add_done_callback(self._on_close_done)

    async def _run(self) -> None:
        LOGGER.info("Connecting to WebSocket at %s", self.url)
        try:
            ws = await websockets.connect(
                self.url,
                subprotocols=self.protocols or None,
                open_timeout=self._open_timeout,
                close_timeout=self._close_timeout,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("WebSocket connect to %s failed: %s", self.url, exc)
            self._notify_error(exc)
            self._notify_close(ABNORMAL_CLOSURE, str(exc))
            return

        self._ws = ws
        self._notify_open()
        writer = asyncio.create_task(self._write_loop(ws), name=f"ws-writer-{self.handle_id}")
        try:
            async for message in ws:
                LOGGER.debug("WebSocket receive: %r", message)
                self._notify_message(message)
        except ConnectionClosed:
            pass
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("WebSocket receive failed: %s", exc)
            self._notify_error(exc)
            with contextlib.suppress(Exception):
                await ws.close(INTERNAL_ERROR, "receive failure")
        finally:
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
        code = ws.close_code if ws.close_code is not None else ABNORMAL_CLOSURE
        self._notify_close(code, ws.close_reason or "")

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            code, reason = self._close_request or (ABNORMAL_CLOSURE, "transport cancelled")
            self._notify_close(code, reason)
        elif task.exception() is not None:
            LOGGER.error("WebSocket transport #%s failed", self.handle_id, exc_info=task.exception())

    def _on_close_done(self, task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            LOGGER.warning("WebSocket closing handshake #%s failed", self.handle_id, exc_info=task.exception())

    async def _write_loop(self, ws) -> None:
        while True:
            payload = await self._outbox.get()
            LOGGER.debug("WebSocket send: %r", payload)
            try:
                await ws.send(payload)
            except ConnectionClosed:
                return
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("WebSocket send failed: %s", exc)
                self._notify_error(exc)
                with contextlib.suppress(Exception):
                    await ws.close(INTERNAL_ERROR, "send failure")
                return
