"""Liveness probing for an open session."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from wsession.config import HeartbeatOptions
from wsession.network.transport.base import Payload

LOGGER = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Periodically sends a probe and expects inbound traffic before a deadline.

    The cycle can be paused and resumed without losing its position: after a
    pause the next probe fires once the unused part of the interval has elapsed.
    Any inbound frame counts as proof of liveness, and frames equal to the probe
    payload are consumed as echoes.
    """

    def __init__(
        self,
        options: HeartbeatOptions,
        *,
        send_probe: Callable[[Payload], bool],
        on_timeout: Callable[[], None],
        get_loop: Callable[[], asyncio.AbstractEventLoop],
    ) -> None:
        self._options = options
        self._interval = float(options.interval)
        self._pong_timeout = float(options.pong_timeout)
        self._send_probe = send_probe
        self._on_timeout = on_timeout
        self._get_loop = get_loop
        self._remaining = self._interval
        self._cycle_start: Optional[float] = None
        self._cycle_timer: Optional[asyncio.TimerHandle] = None
        self._pong_timer: Optional[asyncio.TimerHandle] = None

    @property
    def probe_payload(self) -> Payload:
        return self._options.message

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def remaining(self) -> float:
        """Seconds left in the current cycle as of the last pause or probe."""

        return self._remaining

    @property
    def is_running(self) -> bool:
        return self._cycle_timer is not None

    @property
    def pong_pending(self) -> bool:
        return self._pong_timer is not None

    def resume(self) -> None:
        if self._cycle_timer is not None:
            return
        loop = self._get_loop()
        self._cycle_start = loop.time()
        self._cycle_timer = loop.call_later(self._remaining, self._on_cycle)
        LOGGER.debug("Heartbeat resumed, next probe in %.3fs", self._remaining)

    def pause(self) -> None:
        if self._cycle_timer is None:
            return
        self._cycle_timer.cancel()
        self._cycle_timer = None
        if self._cycle_start is not None:
            elapsed = self._get_loop().time() - self._cycle_start
            self._remaining = max(0.0, min(self._interval, self._remaining - elapsed))
            self._cycle_start = None
        LOGGER.debug("Heartbeat paused, %.3fs left in cycle", self._remaining)

    def stop(self) -> None:
        """Pause the cycle and drop any pending response deadline."""

        self.pause()
        self.cancel_pong_timeout()

    def cancel_pong_timeout(self) -> None:
        if self._pong_timer is not None:
            self._pong_timer.cancel()
            self._pong_timer = None

    def observe(self, payload: Payload) -> bool:
        """Record inbound traffic; return True when the frame is a probe echo."""

        self.cancel_pong_timeout()
        return payload == self._options.message

    def _on_cycle(self) -> None:
        loop = self._get_loop()
        self._remaining = self._interval
        self._cycle_start = loop.time()
        self._cycle_timer = loop.call_later(self._interval, self._on_cycle)
        self._probe()

    def _probe(self) -> None:
        if not self._send_probe(self._options.message):
            # TODO: skip arming the pong deadline when the probe never left the process.
            LOGGER.debug("Heartbeat probe dropped, session not open")
        else:
            LOGGER.debug("Heartbeat probe sent")
        if self._pong_timer is not None:
            return
        self._pong_timer = self._get_loop().call_later(self._pong_timeout, self._on_pong_timeout)

    def _on_pong_timeout(self) -> None:
        self._pong_timer = None
        LOGGER.warning("No response within %.3fs of heartbeat probe", self._pong_timeout)
        self._on_timeout()
