"""Realtime telemetry stream: codec, dedup filters, outbound queue and connection manager."""

from __future__ import annotations

from esplink.stream.codec import (
    ErrorFrame,
    InfoFrame,
    RawFrame,
    SensorPoll,
    TelemetryFrame,
    TelemetrySample,
    decode_frame,
    encode_request,
    is_sensor_poll,
)
from esplink.stream.config import StreamConfig
from esplink.stream.connection import ConnectionManager, ConnectionState
from esplink.stream.events import EventKind, EventLog, EventLogEntry, StreamUpdate, UpdateKind
from esplink.stream.filters import InboundDedupFilter, PollRateGate
from esplink.stream.outbound import OutboundQueue, PendingRequest
from esplink.stream.store import LatestValues

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "ErrorFrame",
    "EventKind",
    "EventLog",
    "EventLogEntry",
    "InboundDedupFilter",
    "InfoFrame",
    "LatestValues",
    "OutboundQueue",
    "PendingRequest",
    "PollRateGate",
    "RawFrame",
    "SensorPoll",
    "StreamConfig",
    "StreamUpdate",
    "TelemetryFrame",
    "TelemetrySample",
    "UpdateKind",
    "decode_frame",
    "encode_request",
    "is_sensor_poll",
]
