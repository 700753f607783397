"""In-memory transport for offline runs and tests."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from wsession.network.transport.base import BaseTransport, Payload, TransportCallbacks

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Transport with no network behind it.

    By default every event is driven by hand through the ``simulate_*`` methods.
    ``auto_open`` opens on the next loop iteration and ``echo`` loops every sent
    payload back as an inbound message. With ``ack_close`` a close request is
    acknowledged immediately, otherwise the peer's closing handshake has to be
    simulated. A forced close is always acknowledged at once.
    """

    def __init__(
        self,
        url: str,
        protocols: Sequence[str],
        callbacks: TransportCallbacks,
        *,
        auto_open: bool = False,
        echo: bool = False,
        ack_close: bool = True,
    ) -> None:
        super().__init__(url, protocols, callbacks)
        self.sent: list[Payload] = []
        self.close_requests: list[tuple[int, str]] = []
        self._echo = echo
        self._ack_close = ack_close
        LOGGER.debug("Dummy transport #%s created for %s", self.handle_id, url)
        if auto_open:
            asyncio.get_running_loop().call_soon(self.simulate_open)

    def send(self, payload: Payload) -> None:
        if self.closed:
            raise RuntimeError("Dummy transport is closed")
        LOGGER.debug("Dummy transport send(): %r", payload)
        self.sent.append(payload)
        if self._echo:
            asyncio.get_running_loop().call_soon(self.simulate_message, payload)

    @property
    def closing(self) -> bool:
        return bool(self.close_requests) or self.closed

    def close(self, code: int = 1000, reason: str = "", *, force: bool = False) -> None:
        LOGGER.debug("Dummy transport close(%s, %r, force=%s)", code, reason, force)
        self.close_requests.append((code, reason))
        if self._ack_close or force:
            self._notify_close(code, reason)

    def simulate_open(self) -> None:
        self._notify_open()

    def simulate_message(self, payload: Payload) -> None:
        self._notify_message(payload)

    def simulate_error(self, error: BaseException | None = None) -> None:
        self._notify_error(error or RuntimeError("simulated transport error"))

    def simulate_close(self, code: int = 1006, reason: str = "") -> None:
        self._notify_close(code, reason)
