"""FIFO queue of outbound requests with admission control.

Admission (dedup) is separate from pacing: :meth:`OutboundQueue.offer`
decides whether a request enters the queue; the connection manager's
drain task decides when it leaves.  Queue contents survive a
disconnect/reconnect cycle and are only removed by transmission or
:meth:`OutboundQueue.clear`.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from esplink.stream.codec import is_sensor_poll
from esplink.stream.filters import PollRateGate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PendingRequest:
    """A serialized request waiting for transmission."""

    wire: str
    enqueued_at: float
    poll: bool = False


class OutboundQueue:
    """Ordered, deduplicated queue of pending outbound requests.

    Rules applied by :meth:`offer`, in order:

    A. A request byte-for-byte equal to one already waiting is dropped.
    B. A sensor-poll request is dropped unless the poll rate window has
       elapsed since the last accepted poll.
    """

    def __init__(self, poll_rate_window: float = 3.0) -> None:
        self._items: deque[PendingRequest] = deque()
        self._rate_gate = PollRateGate(poll_rate_window)
        self._dropped = 0

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def offer(self, wire: str, now: float) -> bool:
        """Try to enqueue *wire*.  Returns ``True`` if it was accepted."""
        if any(item.wire == wire for item in self._items):
            self._dropped += 1
            logger.debug("Dropped duplicate of queued request: %s", wire[:200])
            return False

        poll = is_sensor_poll(wire)
        if poll:
            if not self._rate_gate.should_accept(now):
                self._dropped += 1
                logger.debug("Dropped sensor poll inside rate window: %s", wire[:200])
                return False
            self._rate_gate.record(now)

        self._items.append(PendingRequest(wire=wire, enqueued_at=now, poll=poll))
        return True

    def peek(self) -> PendingRequest | None:
        """Return the front request without removing it."""
        return self._items[0] if self._items else None

    def pop(self) -> PendingRequest:
        """Remove and return the front request.  Raises ``IndexError`` when empty."""
        return self._items.popleft()

    def pending(self) -> tuple[PendingRequest, ...]:
        """Snapshot of waiting requests, front first."""
        return tuple(self._items)

    def clear(self) -> int:
        """Discard every waiting request; returns how many were removed."""
        count = len(self._items)
        self._items.clear()
        return count

    def reset_rate_window(self) -> None:
        """Forget the last accepted poll (new connection attempt)."""
        self._rate_gate.reset()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
