import asyncio

import pytest

from wsession.config import SessionSettings
from wsession.network.session import Session, default_transport_factory
from wsession.network.session_state import SessionStatus
from wsession.network.transport.base import TransportCallbacks
from wsession.network.transport.dummy import DummyTransport


@pytest.mark.asyncio
async def test_loopback_transport_echoes_and_consumes_probes(make_settings):
    settings = make_settings(transport="dummy", heartbeat={"interval": 0.02, "pong_timeout": 0.5})
    received = []
    session = Session(
        settings=settings,
        transport_factory=default_transport_factory(settings),
        on_message=lambda handle, payload: received.append(payload),
    )
    session.send("queued")
    session.open()

    await asyncio.sleep(0.1)

    assert isinstance(session.transport, DummyTransport)
    assert session.status is SessionStatus.OPEN
    assert received == ["queued"]
    assert "ping" in session.transport.sent
    session.close()
    assert session.status is SessionStatus.CLOSED


def test_events_after_close_are_dropped():
    events = []
    callbacks = TransportCallbacks(
        on_open=lambda: events.append("open"),
        on_close=lambda code, reason: events.append(("close", code)),
        on_error=lambda error: events.append("error"),
        on_message=lambda payload: events.append(payload),
    )
    handle = DummyTransport("ws://example.test/", [], callbacks)

    handle.simulate_close(1001)
    handle.simulate_close(1006)
    handle.simulate_message("late")
    handle.simulate_error()

    assert events == [("close", 1001)]
    with pytest.raises(RuntimeError):
        handle.send("after close")


def test_default_factory_selects_websocket():
    factory = default_transport_factory(SessionSettings(transport="websocket", url="ws://example.test/"))

    assert callable(factory)


def test_forced_close_is_acknowledged_without_peer():
    closes = []
    callbacks = TransportCallbacks(
        on_open=lambda: None,
        on_close=lambda code, reason: closes.append((code, reason)),
        on_error=lambda error: None,
        on_message=lambda payload: None,
    )
    handle = DummyTransport("ws://example.test/", [], callbacks, ack_close=False)

    handle.close()
    assert handle.closing
    assert not handle.closed
    assert closes == []

    handle.close(1000, "heartbeat timeout", force=True)

    assert handle.closed
    assert closes == [(1000, "heartbeat timeout")]
