"""Per-stream request sequencing so only the latest response is applied."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict

logger = logging.getLogger("workbench.reporting")


@dataclass(frozen=True)
class Ticket:
    stream: str
    seq: int


class SequenceCounter:
    """Monotonic counter per logical query stream.

    ``issue`` hands out a ticket before a request goes out. When the response
    comes back, ``accept`` tells whether it is still the latest one issued for
    its stream. Superseded responses are dropped silently.
    """

    def __init__(self) -> None:
        self._issued: Dict[str, int] = {}
        self._lock = threading.Lock()

    def issue(self, stream: str) -> Ticket:
        with self._lock:
            seq = self._issued.get(stream, 0) + 1
            self._issued[stream] = seq
        return Ticket(stream, seq)

    def latest(self, stream: str) -> int:
        return self._issued.get(stream, 0)

    def is_latest(self, ticket: Ticket) -> bool:
        return self._issued.get(ticket.stream) == ticket.seq

    def accept(self, ticket: Ticket) -> bool:
        if self.is_latest(ticket):
            return True
        logger.debug(
            "Discarding stale response for %s (seq %d, latest %d)",
            ticket.stream,
            ticket.seq,
            self.latest(ticket.stream),
        )
        return False

    def forget(self, stream: str) -> None:
        with self._lock:
            self._issued.pop(stream, None)


__all__ = ["Ticket", "SequenceCounter"]
