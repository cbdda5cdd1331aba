"""In-memory table of the latest telemetry sample per device + metric.

Updated by :class:`~esplink.stream.connection.ConnectionManager` for every
sample that passes the inbound dedup filter.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esplink.stream.codec import TelemetrySample


class LatestValues:
    """Single-event-loop store of latest samples.

    Keyed by ``"<deviceId>_<metric>"`` (e.g. ``"temp1_temperature"``).
    """

    def __init__(self) -> None:
        self._data: dict[str, TelemetrySample] = {}

    def update(self, sample: TelemetrySample) -> None:
        """Record or overwrite the latest sample for its key."""
        self._data[sample.key] = sample

    def get(self, key: str) -> TelemetrySample | None:
        return self._data.get(key)

    def get_all(self) -> dict[str, TelemetrySample]:
        """Return a shallow copy of all current samples."""
        return dict(self._data)

    def age_seconds(self, key: str) -> float | None:
        """Return seconds since *key* was last updated, or ``None``."""
        sample = self._data.get(key)
        if sample is None:
            return None
        return time.time() - sample.observed_at.timestamp()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
