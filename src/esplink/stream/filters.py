"""Time-window dedup gates for inbound samples and outbound sensor polls.

Two independent gates:

1. **Inbound dedup**: a telemetry sample whose device + metric + exact
   value was already accepted within the window is swallowed.  Guards
   against a lossy link re-delivering the same push.
2. **Poll rate gate**: sensor-poll requests are admitted at most once per
   window, process-wide for one connection manager.

Both gates take ``now`` explicitly (``time.monotonic()`` in production) so
tests can drive them without sleeping.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esplink.stream.codec import TelemetrySample

# Prune expired inbound keys once the table grows past this many entries.
_PRUNE_THRESHOLD = 256


def sample_identity(sample: TelemetrySample) -> str:
    """Dedup key: device id + metric + stringified value."""
    return f"{sample.device_id}\x1f{sample.metric}\x1f{sample.value}"


class InboundDedupFilter:
    """Suppress repeated telemetry samples within a sliding window.

    Usage::

        filt = InboundDedupFilter(window_seconds=1.0)
        if filt.should_accept(sample, time.monotonic()):
            # ... surface the sample
    """

    def __init__(self, window_seconds: float = 1.0) -> None:
        self._window = window_seconds
        self._last_seen: dict[str, float] = {}

    @property
    def window_seconds(self) -> float:
        return self._window

    def should_accept(self, sample: TelemetrySample, now: float) -> bool:
        """Return ``True`` and record the sample if it is not a recent repeat."""
        key = sample_identity(sample)
        last = self._last_seen.get(key)
        if last is not None and (now - last) < self._window:
            return False

        self._last_seen[key] = now
        if len(self._last_seen) > _PRUNE_THRESHOLD:
            self._prune(now)
        return True

    def _prune(self, now: float) -> None:
        expired = [k for k, t in self._last_seen.items() if (now - t) >= self._window]
        for k in expired:
            del self._last_seen[k]

    def reset(self) -> None:
        """Clear all tracked state."""
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._last_seen)


class PollRateGate:
    """Single-slot throttle for the sensor-poll request class."""

    def __init__(self, interval_seconds: float = 3.0) -> None:
        self._interval = interval_seconds
        self._last_accepted: float | None = None

    @property
    def last_accepted(self) -> float | None:
        return self._last_accepted

    def should_accept(self, now: float) -> bool:
        """Check whether a poll may be admitted at *now* (does not record)."""
        if self._last_accepted is None:
            return True
        return (now - self._last_accepted) >= self._interval

    def record(self, now: float) -> None:
        """Record an admitted poll (call after ``should_accept`` returns True)."""
        self._last_accepted = now

    def reset(self) -> None:
        self._last_accepted = None
