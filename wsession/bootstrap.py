"""Command line entrypoint wiring settings, a session and process shutdown."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import threading
from typing import Any, Optional, Sequence

from wsession.config import SessionSettings
from wsession.network.session import Session
from wsession.network.shutdown import register_auto_close
from wsession.network.transport.base import BaseTransport, Payload

LOGGER = logging.getLogger(__name__)


def build_settings(argv: Optional[Sequence[str]] = None) -> SessionSettings:
    """Overlay command line options on the file/env backed settings."""

    parser = argparse.ArgumentParser(prog="wsession", description="Reconnecting WebSocket session")
    parser.add_argument("url", nargs="?", help="WebSocket endpoint (overrides WSESSION_URL)")
    parser.add_argument("--protocol", action="append", dest="protocols", help="Sub-protocol to offer; repeatable")
    parser.add_argument("--heartbeat", action="store_true", help="Enable liveness probes with default settings")
    parser.add_argument("--reconnect", action="store_true", help="Reconnect indefinitely after unexpected closes")
    parser.add_argument("--dummy", action="store_true", help="Use the in-memory loopback transport")
    parser.add_argument("--log-level", help="Logging level")
    args = parser.parse_args(argv)

    overrides: dict[str, Any] = {}
    if args.url:
        overrides["url"] = args.url
    if args.protocols:
        overrides["protocols"] = args.protocols
    if args.heartbeat:
        overrides["heartbeat"] = True
    if args.reconnect:
        overrides["auto_reconnect"] = True
    if args.dummy:
        overrides["transport"] = "dummy"
    if args.log_level:
        overrides["log_level"] = args.log_level
    return SessionSettings(**overrides)


def _log_message(transport: BaseTransport, payload: Payload) -> None:
    LOGGER.info("<< %r", payload)


def _send_line(session: Session, line: str) -> None:
    if not session.send(line):
        LOGGER.info("Buffered (%s pending)", session.buffered)


def _forward_stdin(session: Session, loop: asyncio.AbstractEventLoop, done: asyncio.Event) -> None:
    """Read stdin on a daemon thread and hand each line to the loop."""

    for line in sys.stdin:
        loop.call_soon_threadsafe(_send_line, session, line.rstrip("\n"))
    loop.call_soon_threadsafe(done.set)


async def serve_forever(settings: SessionSettings) -> None:
    """Run a session until a shutdown signal or end of input."""

    stopped = asyncio.Event()
    session = Session(settings=settings, on_message=_log_message)
    if session.url is None:
        LOGGER.warning("No url configured; session stays closed")
    unregister = None
    if settings.auto_close:
        unregister = register_auto_close(session, then=stopped.set)
    reader = threading.Thread(
        target=_forward_stdin,
        args=(session, asyncio.get_running_loop(), stopped),
        name="wsession-stdin",
        daemon=True,
    )
    reader.start()
    try:
        await stopped.wait()
    finally:
        if unregister:
            unregister()
        session.close()
        for _ in range(50):
            if session.transport is None:
                break
            await asyncio.sleep(0.1)


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = build_settings(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
    try:
        asyncio.run(serve_forever(settings))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")
    return 0
