"""Event log entries and push notifications for subscribers.

Subscribers are plain synchronous callables invoked in order on the event
loop thread.  Each one is error-isolated: a failing subscriber is logged
and the rest still receive the update.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class EventKind(StrEnum):
    INFO = "info"
    SENT = "sent"
    ERROR = "error"
    RAW = "raw"


@dataclass(frozen=True, slots=True)
class EventLogEntry:
    """One human-readable line in the rolling connection log."""

    text: str
    kind: EventKind = EventKind.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "text": self.text,
        }


class EventLog:
    """Append-only bounded ring of :class:`EventLogEntry` (most recent last)."""

    def __init__(self, capacity: int = 500) -> None:
        self._entries: deque[EventLogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        assert self._entries.maxlen is not None
        return self._entries.maxlen

    def append(self, entry: EventLogEntry) -> None:
        self._entries.append(entry)

    def entries(self) -> tuple[EventLogEntry, ...]:
        """Return a snapshot of the current entries."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class UpdateKind(StrEnum):
    STATE = "state"
    LOG = "log"
    SAMPLE = "sample"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class StreamUpdate:
    """A push notification from the connection manager.

    ``payload`` is the new :class:`~esplink.stream.connection.ConnectionState`
    for ``STATE``, the :class:`EventLogEntry` for ``LOG``, the
    :class:`~esplink.stream.codec.TelemetrySample` for ``SAMPLE`` and the
    error string (or ``None`` when cleared) for ``ERROR``.
    """

    kind: UpdateKind
    payload: Any


class UpdateFanout:
    """Delivers each :class:`StreamUpdate` to every registered subscriber."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[StreamUpdate], None]] = []

    def subscribe(self, callback: Callable[[StreamUpdate], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, update: StreamUpdate) -> None:
        for callback in list(self._subscribers):
            try:
                callback(update)
            except Exception:
                logger.warning(
                    "Subscriber %s failed for %s update", callback, update.kind, exc_info=True
                )
