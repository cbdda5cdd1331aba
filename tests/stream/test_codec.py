"""Tests for inbound frame decoding and outbound request encoding."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

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


class TestDecodeFrame:
    def test_info_frame(self) -> None:
        frame = decode_frame('{"type":"info","message":"hello"}')
        assert isinstance(frame, InfoFrame)
        assert frame.payload["message"] == "hello"

    def test_error_frame(self) -> None:
        frame = decode_frame('{"error":"sensor not found"}')
        assert frame == ErrorFrame("sensor not found")

    def test_info_takes_precedence_over_error(self) -> None:
        frame = decode_frame('{"type":"info","error":"ignored"}')
        assert isinstance(frame, InfoFrame)

    def test_telemetry_frame(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=UTC)
        frame = decode_frame(
            '{"deviceId":"temp1","sensor":"temperature","value":"21.5"}', now=now
        )
        assert isinstance(frame, TelemetryFrame)
        assert frame.sample.device_id == "temp1"
        assert frame.sample.metric == "temperature"
        assert frame.sample.value == "21.5"
        assert frame.sample.observed_at == now

    def test_numeric_value(self) -> None:
        frame = decode_frame('{"deviceId":"hum1","sensor":"humidity","value":48}')
        assert isinstance(frame, TelemetryFrame)
        assert frame.sample.value == 48

    def test_error_beats_telemetry(self) -> None:
        frame = decode_frame('{"deviceId":"a","sensor":"b","value":1,"error":"bad"}')
        assert frame == ErrorFrame("bad")

    def test_invalid_json_is_raw(self) -> None:
        frame = decode_frame("Hello from ESP32")
        assert frame == RawFrame("Hello from ESP32")

    def test_json_array_is_raw(self) -> None:
        assert isinstance(decode_frame("[1, 2, 3]"), RawFrame)

    def test_missing_value_is_raw(self) -> None:
        assert isinstance(decode_frame('{"deviceId":"temp1","sensor":"temperature"}'), RawFrame)

    def test_boolean_value_is_raw(self) -> None:
        assert isinstance(decode_frame('{"deviceId":"x","sensor":"y","value":true}'), RawFrame)

    def test_non_string_device_id_is_raw(self) -> None:
        assert isinstance(decode_frame('{"deviceId":7,"sensor":"y","value":1}'), RawFrame)

    def test_bytes_are_decoded(self) -> None:
        frame = decode_frame(b'{"error":"oops"}')
        assert frame == ErrorFrame("oops")

    def test_empty_string_is_raw(self) -> None:
        assert decode_frame("") == RawFrame("")


class TestTelemetrySample:
    def test_key(self) -> None:
        sample = TelemetrySample(device_id="temp1", metric="temperature", value="21.5")
        assert sample.key == "temp1_temperature"

    def test_to_dict(self) -> None:
        ts = datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC)
        sample = TelemetrySample("temp1", "temperature", 21.5, ts)
        assert sample.to_dict() == {
            "deviceId": "temp1",
            "sensor": "temperature",
            "value": 21.5,
            "observedAt": ts.isoformat(),
        }


class TestEncodeRequest:
    def test_sensor_poll_is_compact_json(self) -> None:
        wire = encode_request(SensorPoll("temp1", "temperature"))
        assert wire == '{"deviceId":"temp1","sensor":"temperature"}'

    def test_plain_text_passes_through(self) -> None:
        assert encode_request("ping") == "ping"

    def test_dict_is_serialized(self) -> None:
        wire = encode_request({"deviceId": "led1", "state": "on"})
        assert json.loads(wire) == {"deviceId": "led1", "state": "on"}
        assert " " not in wire

    def test_unsupported_type_raises(self) -> None:
        with pytest.raises(TypeError, match="int"):
            encode_request(42)  # type: ignore[arg-type]


class TestIsSensorPoll:
    def test_structured_poll(self) -> None:
        assert is_sensor_poll('{"deviceId":"temp1","sensor":"temperature"}') is True

    def test_with_value_is_not_a_poll(self) -> None:
        assert is_sensor_poll('{"deviceId":"temp1","sensor":"temperature","value":1}') is False

    def test_plain_text_is_not_a_poll(self) -> None:
        assert is_sensor_poll("ping") is False

    def test_missing_sensor(self) -> None:
        assert is_sensor_poll('{"deviceId":"led1","state":"on"}') is False
