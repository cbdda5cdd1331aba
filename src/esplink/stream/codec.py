"""Wire codec for the controller's ``/ws`` telemetry socket.

Inbound text frames are decoded once into a tagged variant and then
matched exhaustively by the connection manager:

- ``{"type": "info", ...}``                          → :class:`InfoFrame`
- ``{"error": "..."}``                               → :class:`ErrorFrame`
- ``{"deviceId": "...", "sensor": "...", "value": x}`` → :class:`TelemetryFrame`
- anything else (including invalid JSON)             → :class:`RawFrame`

Outbound requests are either plain text (sent as-is), a structured
:class:`SensorPoll` (``{"deviceId": ..., "sensor": ...}``), or a dict
serialized to compact JSON.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Union

logger = logging.getLogger(__name__)

_SEPARATORS = (",", ":")


@dataclass(frozen=True, slots=True)
class TelemetrySample:
    """A single (device, metric, value, time) observation pushed by the controller."""

    device_id: str
    metric: str
    value: str | int | float
    observed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> str:
        """Latest-value key, e.g. ``"temp1_temperature"``."""
        return f"{self.device_id}_{self.metric}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "sensor": self.metric,
            "value": self.value,
            "observedAt": self.observed_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class InfoFrame:
    """Informational notice; carries no actionable fields."""

    payload: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ErrorFrame:
    """Error notice reported by the controller.  Not fatal to the connection."""

    message: str


@dataclass(frozen=True, slots=True)
class TelemetryFrame:
    sample: TelemetrySample


@dataclass(frozen=True, slots=True)
class RawFrame:
    """Unstructured text, logged verbatim."""

    text: str


InboundFrame = Union[InfoFrame, ErrorFrame, TelemetryFrame, RawFrame]


@dataclass(frozen=True, slots=True)
class SensorPoll:
    """Ask a device for its current sensor reading (the telemetry-poll class)."""

    device_id: str
    sensor: str

    def to_wire(self) -> dict[str, str]:
        return {"deviceId": self.device_id, "sensor": self.sensor}


OutboundRequest = Union[str, SensorPoll, dict[str, Any]]


def _as_text(raw: str | bytes) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _is_scalar_value(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def decode_frame(raw: str | bytes, *, now: datetime | None = None) -> InboundFrame:
    """Decode one inbound frame.  Never raises for malformed input."""
    text = _as_text(raw)
    try:
        msg = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return RawFrame(text)

    if not isinstance(msg, dict):
        return RawFrame(text)

    if msg.get("type") == "info":
        return InfoFrame(msg)

    if "error" in msg:
        return ErrorFrame(str(msg["error"]))

    device_id = msg.get("deviceId")
    sensor = msg.get("sensor")
    value = msg.get("value")
    if isinstance(device_id, str) and isinstance(sensor, str) and _is_scalar_value(value):
        return TelemetryFrame(
            TelemetrySample(
                device_id=device_id,
                metric=sensor,
                value=value,
                observed_at=now or datetime.now(UTC),
            )
        )

    logger.debug("Unrecognised JSON frame treated as raw text: %s", text[:200])
    return RawFrame(text)


def encode_request(request: OutboundRequest) -> str:
    """Serialize an outbound request to its wire text.

    Raises :class:`TypeError` for unsupported request types.
    """
    if isinstance(request, SensorPoll):
        return json.dumps(request.to_wire(), separators=_SEPARATORS)
    if isinstance(request, str):
        return request
    if isinstance(request, dict):
        return json.dumps(request, separators=_SEPARATORS, default=str)
    raise TypeError(f"Unsupported outbound request type: {type(request).__name__}")


def is_sensor_poll(wire: str) -> bool:
    """Return ``True`` if serialized *wire* text asks a device for a sensor reading."""
    try:
        msg = json.loads(wire)
    except (json.JSONDecodeError, ValueError):
        return False
    return (
        isinstance(msg, dict)
        and isinstance(msg.get("deviceId"), str)
        and isinstance(msg.get("sensor"), str)
        and "value" not in msg
    )
