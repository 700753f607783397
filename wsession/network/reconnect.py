"""Reconnection policy applied after unexpected closes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from wsession.config import ReconnectOptions

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryLimit:
    """Retry while fewer than ``count`` attempts were made; negative means unlimited."""

    count: int

    def allows(self, attempts: int) -> bool:
        return self.count < 0 or attempts < self.count


@dataclass(frozen=True)
class RetryPredicate:
    """Retry whenever the predicate returns True."""

    predicate: Callable[[], bool]

    def allows(self, attempts: int) -> bool:
        return bool(self.predicate())


RetryRule = Union[RetryLimit, RetryPredicate]


def retry_rule(retries: Union[int, Callable[[], bool]]) -> RetryRule:
    if callable(retries):
        return RetryPredicate(retries)
    return RetryLimit(int(retries))


class ReconnectPolicy:
    """Decides whether to reconnect and schedules the attempt after a fixed delay.

    The attempt counter accumulates across unexpected closes and is only reset
    when the caller explicitly reopens the session.
    """

    def __init__(
        self,
        options: ReconnectOptions,
        *,
        get_loop: Callable[[], asyncio.AbstractEventLoop],
    ) -> None:
        self._rule = retry_rule(options.retries)
        self._delay = float(options.delay)
        self._on_failed = options.on_failed
        self._get_loop = get_loop
        self._attempts = 0
        self._pending: Optional[asyncio.TimerHandle] = None

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def reset(self) -> None:
        self.cancel()
        self._attempts = 0

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def schedule(self, connect: Callable[[], None]) -> bool:
        """Schedule ``connect`` if the rule allows another attempt.

        Returns False and fires the exhaustion callback otherwise, or when
        there is no event loop to schedule on.
        """

        if self._pending is not None:
            return True
        if not self._rule.allows(self._attempts):
            LOGGER.warning("Reconnect attempts exhausted after %s attempt(s)", self._attempts)
            self._fail()
            return False
        try:
            loop = self._get_loop()
        except RuntimeError as exc:
            LOGGER.warning("Cannot schedule reconnect: %s", exc)
            self._fail()
            return False
        self._attempts += 1
        LOGGER.info("Reconnecting in %.2fs (attempt %s)", self._delay, self._attempts)
        self._pending = loop.call_later(self._delay, self._fire, connect)
        return True

    def _fail(self) -> None:
        if self._on_failed is None:
            return
        try:
            self._on_failed()
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress reconnect on_failed callback error", exc_info=True)

    def _fire(self, connect: Callable[[], None]) -> None:
        self._pending = None
        connect()
