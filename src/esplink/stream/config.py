"""Tuning parameters for the telemetry connection manager."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class StreamConfig(BaseModel):
    """Timing and sizing policy for :class:`~esplink.stream.connection.ConnectionManager`.

    Loaded from ``~/.config/esplink/stream.json``, CLI flags, or defaults.
    The dedup windows are policy choices (tolerance for a noisy peripheral
    that re-sends pushes), not protocol requirements, so they are exposed
    here rather than hard-coded.
    """

    port: int = Field(default=81, gt=0, lt=65536)
    path: str = "/ws"
    retry_delay: float = Field(default=3.0, ge=0)
    """Fixed delay in seconds between a lost connection and the next attempt."""
    max_attempts: int = Field(default=5, ge=1)
    """Consecutive failed attempts tolerated before giving up and disabling."""
    inbound_dedup_window: float = Field(default=1.0, ge=0)
    """Identical device+metric+value samples within this window are dropped."""
    poll_rate_window: float = Field(default=3.0, ge=0)
    """Minimum seconds between accepted sensor-poll requests."""
    drain_interval: float = Field(default=0.1, ge=0)
    """Minimum seconds between two outbound transmissions."""
    log_capacity: int = Field(default=500, ge=1)
    open_timeout: float | None = Field(default=5.0, gt=0)
    """Seconds allowed for the WebSocket opening handshake (``None`` waits forever)."""

    @classmethod
    def load(cls, path: Path | str | None = None) -> StreamConfig:
        """Load configuration from a JSON file.

        Falls back to defaults if the file does not exist.
        """
        resolved = (
            Path("~/.config/esplink/stream.json").expanduser() if path is None else Path(path)
        )

        if not resolved.exists():
            return cls()

        raw = json.loads(resolved.read_text(encoding="utf-8"))
        return cls.model_validate(raw)

    def merge_overrides(self, **overrides: Any) -> StreamConfig:
        """Return a new config with non-``None`` overrides applied."""
        data: dict[str, Any] = self.model_dump()
        for key, value in overrides.items():
            if value is not None:
                data[key] = value
        return StreamConfig.model_validate(data)
