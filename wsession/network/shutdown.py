"""Close sessions when the hosting process is asked to shut down."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable, Iterable, Optional

from wsession.network.session import Session

LOGGER = logging.getLogger(__name__)

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


def register_auto_close(
    session: Session,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    *,
    signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS,
    then: Optional[Callable[[], None]] = None,
) -> Callable[[], None]:
    """Close ``session`` once on the first shutdown signal.

    Handlers remove themselves after firing. ``then`` runs after the close
    request, e.g. to release a task waiting for shutdown. Returns a callable
    that unregisters the handlers.
    """

    loop = loop or asyncio.get_running_loop()
    installed: list[signal.Signals] = []

    def _unregister() -> None:
        while installed:
            sig = installed.pop()
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError, ValueError):
                LOGGER.debug("Suppress signal handler removal error for %s", sig, exc_info=True)

    def _once(sig: signal.Signals) -> None:
        LOGGER.info("Received %s, closing session", sig.name)
        _unregister()
        session.close()
        if then is not None:
            then()

    for sig in signals:
        try:
            loop.add_signal_handler(sig, _once, sig)
        except (NotImplementedError, RuntimeError, ValueError):
            LOGGER.debug("Signal handlers unavailable for %s; auto-close disabled", sig, exc_info=True)
            continue
        installed.append(sig)
    return _unregister
