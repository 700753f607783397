"""Outbound payloads held while the session is not open."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Iterator

from wsession.network.transport.base import Payload

LOGGER = logging.getLogger(__name__)


class SendBuffer:
    """FIFO queue of payloads waiting for the next open connection.

    Entries are never reordered or deduplicated and leave the queue only once
    they have been handed to the transport.
    """

    def __init__(self) -> None:
        self._entries: Deque[Payload] = deque()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Payload]:
        return iter(self._entries)

    def append(self, payload: Payload) -> None:
        self._entries.append(payload)
        LOGGER.debug("Buffered payload (%s pending)", len(self._entries))

    def flush(self, transmit: Callable[[Payload], bool]) -> int:
        """Hand entries to ``transmit`` in order, stopping at the first failure.

        Returns the number of entries sent.
        """

        sent = 0
        while self._entries:
            if not transmit(self._entries[0]):
                break
            self._entries.popleft()
            sent += 1
        if sent:
            LOGGER.debug("Flushed %s buffered payload(s), %s remaining", sent, len(self._entries))
        return sent

    def clear(self) -> None:
        self._entries.clear()
