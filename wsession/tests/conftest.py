from __future__ import annotations

from itertools import count
from typing import Any, Callable

import pytest

from wsession.config import SessionSettings
from wsession.network.transport.dummy import DummyTransport

URL = "ws://example.test/socket"


class _Timer:
    def __init__(self, when: float, seq: int, callback: Callable[..., None], args: tuple[Any, ...]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualLoop:
    """The slice of the event loop the session uses, driven by hand."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[_Timer] = []
        self._seq = count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[..., None], *args: Any) -> _Timer:
        timer = _Timer(self.now + max(0.0, delay), next(self._seq), callback, args)
        self._timers.append(timer)
        return timer

    def pending(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback(*timer.args)
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now = target


class RecordingFactory:
    """Transport factory keeping every handle it created."""

    def __init__(self, transport_cls: type[DummyTransport] = DummyTransport, **kwargs: Any) -> None:
        self.transport_cls = transport_cls
        self.kwargs = kwargs
        self.handles: list[DummyTransport] = []

    def __call__(self, url, protocols, callbacks) -> DummyTransport:
        handle = self.transport_cls(url, protocols, callbacks, **self.kwargs)
        self.handles.append(handle)
        return handle

    @property
    def latest(self) -> DummyTransport:
        return self.handles[-1]

    def live(self) -> list[DummyTransport]:
        return [handle for handle in self.handles if not handle.closed]


@pytest.fixture
def loop() -> ManualLoop:
    return ManualLoop()


@pytest.fixture
def factory() -> RecordingFactory:
    return RecordingFactory()


@pytest.fixture
def make_settings() -> Callable[..., SessionSettings]:
    def _make(**overrides: Any) -> SessionSettings:
        values: dict[str, Any] = {"url": URL, "immediate": False}
        values.update(overrides)
        return SessionSettings(**values)

    return _make


@pytest.fixture
def make_factory() -> Callable[..., RecordingFactory]:
    return RecordingFactory
